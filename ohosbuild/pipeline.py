# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

from .components import Component
from .errors import BuildError
from .logging import log
from .orchestrator import Orchestrator


def prepare_ndk(orch):
    orch.prepare_ndk()
    orch.apply_sysroot_patches()


def prepare(orch):
    orch.prepare_ndk()
    orch.ensure_present(Component.BINUTILS)
    orch.apply_sysroot_patches()
    orch.ensure_present(Component.GCC)


def prepare_binutils(orch):
    orch.ensure_present(Component.BINUTILS)


def download_prereqs(orch):
    orch.download_prerequisites()


def binutils(orch):
    orch.build_binutils()


def configure(orch):
    orch.configure_gcc()


def build(orch):
    orch.build_gcc()


def install(orch):
    orch.install_gcc()


def clean(orch):
    orch.clean()


def all_(orch):
    prepare(orch)
    orch.ensure_built(Component.BINUTILS)
    orch.configure_gcc()
    orch.build_gcc()
    orch.install_gcc()


COMMANDS = {
    "prepare_ndk": prepare_ndk,
    "prepare": prepare,
    "prepare_binutils": prepare_binutils,
    "download_prereqs": download_prereqs,
    "binutils": binutils,
    "configure": configure,
    "build": build,
    "install": install,
    "clean": clean,
    "all": all_,
}

# Commands that invoke configure or make and so need a usable predecessor.
BUILD_COMMANDS = {"binutils", "configure", "build", "install", "all"}


def run_command(command, settings, **kwargs) -> int:
    """Run a pipeline command, returning the process exit code.

    Keyword arguments are passed to :class:`Orchestrator`.
    """
    try:
        orch = Orchestrator(settings, **kwargs)
    except BuildError as e:
        log("%s failed at configuration: %s" % (command, e))
        return 1

    orch.log_configuration()

    try:
        if command in BUILD_COMMANDS:
            orch.check_predecessor()

        COMMANDS[command](orch)
    except (BuildError, OSError) as e:
        log("%s failed at %s: %s" % (command, orch.step, e))
        return 1

    log("%s complete" % command)

    return 0
