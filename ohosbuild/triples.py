# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Machine triples and build stage classification.

Every other module consumes the stage computed here instead of comparing
triples itself.
"""

import dataclasses
import enum
import functools
import platform
import re
import subprocess
from typing import NamedTuple, Optional

from .archs import lookup
from .errors import ConfigurationError

DEFAULT_TARGET = "aarch64-linux-ohos"

SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.]+$")


class BuildStage(enum.Enum):
    STAGE1_CROSS = "stage1-cross"
    STAGE2_CANADIAN = "stage2-canadian"
    STAGE3_NATIVE = "stage3-native"
    NATIVE = "native"

    @property
    def description(self) -> str:
        return {
            BuildStage.STAGE1_CROSS: "cross-compiler (stage 1)",
            BuildStage.STAGE2_CANADIAN: "Canadian Cross (stage 2)",
            BuildStage.STAGE3_NATIVE: "native OHOS bootstrap (stage 3)",
            BuildStage.NATIVE: "native",
        }[self]


@dataclasses.dataclass(frozen=True)
class Triple:
    machine: str

    def __post_init__(self):
        parts = self.machine.split("-")
        if len(parts) < 2 or not all(SEGMENT_RE.match(p) for p in parts):
            raise ConfigurationError("malformed triple: %r" % self.machine)

    def __str__(self):
        return self.machine

    @property
    def arch(self) -> str:
        return self.machine.split("-")[0]

    @property
    def is_ohos(self) -> bool:
        return "-linux-ohos" in self.machine

    def tool(self, name: str) -> str:
        """Name of a tool under the cross prefix convention."""
        return "%s-%s" % (self.machine, name)


class Triples(NamedTuple):
    build: Triple
    host: Triple
    target: Triple

    @property
    def cross_compiling(self) -> bool:
        """Whether the produced tools generate code for another machine."""
        return self.host != self.target

    @property
    def all_equal(self) -> bool:
        return self.build == self.host == self.target


def classify(build, host, target, predecessor: bool = False) -> BuildStage:
    """Classify a triple combination into a build stage.

    ``predecessor`` tells whether a stage 2 toolchain prefix was supplied;
    it only distinguishes a stage 3 self-bootstrap from a plain native build.
    """
    if build == host == target:
        if predecessor:
            return BuildStage.STAGE3_NATIVE
        else:
            return BuildStage.NATIVE

    if build != host and host == target:
        return BuildStage.STAGE2_CANADIAN

    # build == host != target, and the unsupported build != host != target
    # which builds the same way a stage 1 cross toolchain does.
    return BuildStage.STAGE1_CROSS


@functools.lru_cache(maxsize=None)
def detect_build_triple() -> str:
    """Obtain the triple of the machine we're running on."""
    try:
        res = subprocess.run(
            ["gcc", "-dumpmachine"],
            check=True,
            capture_output=True,
            encoding="utf-8",
        )
        machine = res.stdout.strip()
        if machine:
            return machine
    except (OSError, subprocess.CalledProcessError):
        pass

    return "%s-linux-gnu" % platform.machine()


def resolve(
    build: Optional[str],
    host: Optional[str],
    target: Optional[str],
    default_target: str = DEFAULT_TARGET,
    stage2_prefix=None,
    detect=detect_build_triple,
) -> tuple[Triples, BuildStage]:
    """Normalize a (build, host, target) combination and classify it.

    Empty values are defaulted: target to ``default_target``, build to the
    detected local machine and host to the (possibly defaulted) build.
    """
    target = target or default_target
    build = build or detect()
    host = host or build

    triples = Triples(Triple(build), Triple(host), Triple(target))

    # Fails on unsupported architectures.
    lookup(triples.target.machine)

    stage = classify(
        triples.build, triples.host, triples.target, predecessor=bool(stage2_prefix)
    )

    return triples, stage
