# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import pathlib

from .components import PREDECESSOR_TOOLS
from .errors import MissingPredecessor
from .logging import log
from .triples import BuildStage
from .utils import is_executable


def _require_prefix(prefix, option, stage_name):
    if not prefix:
        raise MissingPredecessor(
            option,
            "%s prefix not set; a %s build requires it (use %s=/path/to/install)"
            % (option.lstrip("-"), stage_name, option),
        )

    return pathlib.Path(prefix) / "bin"


def validate(stage, triples, prefixes, probe=is_executable) -> dict[str, pathlib.Path]:
    """Verify the predecessor toolchain a stage builds with.

    Returns a mapping of tool name to the verified executable, which is
    empty for stages without a predecessor. Raises MissingPredecessor naming
    the first tool that is absent or not executable.
    """
    target = triples.target
    tools = {}

    if stage is BuildStage.STAGE2_CANADIAN:
        bindir = _require_prefix(prefixes.stage1, "--stage1", "stage 2 (Canadian Cross)")
        log("checking stage 1 toolchain at %s" % prefixes.stage1)

        for tool in PREDECESSOR_TOOLS:
            path = bindir / target.tool(tool)
            if not probe(path):
                raise MissingPredecessor(
                    path,
                    "stage 1 tool not found: %s; make sure the stage 1 cross "
                    "compiler is installed at %s" % (path, prefixes.stage1),
                )
            tools[tool] = path

    elif stage is BuildStage.STAGE3_NATIVE:
        bindir = _require_prefix(prefixes.stage2, "--stage2", "stage 3 (native bootstrap)")
        log("checking stage 2 toolchain at %s" % prefixes.stage2)

        for tool in PREDECESSOR_TOOLS:
            path = bindir / tool
            if not probe(path):
                path = bindir / target.tool(tool)
            if not probe(path):
                raise MissingPredecessor(
                    path,
                    "stage 2 tool not found: %s; make sure the stage 2 native "
                    "compiler is installed at %s" % (path, prefixes.stage2),
                )
            tools[tool] = path

    else:
        return tools

    log("predecessor toolchain verified: %s" % tools["gcc"])

    return tools
