# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import pathlib

from ohosbuild.config import BuildSettings, ToolchainPrefixes
from ohosbuild.downloads import GCC_PREREQUISITES

TARGET = "aarch64-linux-ohos"
BUILD = "x86_64-linux-gnu"


def make_executable(path: pathlib.Path) -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(0o755)

    return path


def make_settings(work_dir: pathlib.Path, **kwargs) -> BuildSettings:
    stage1 = kwargs.pop("stage1", None)
    stage2 = kwargs.pop("stage2", None)
    prefixes = kwargs.pop("prefixes", None) or ToolchainPrefixes.create(
        install=work_dir / "install", stage1=stage1, stage2=stage2
    )
    kwargs.setdefault("build", BUILD)
    kwargs.setdefault("target", TARGET)
    kwargs.setdefault("jobs", 2)

    return BuildSettings(work_dir=work_dir, prefixes=prefixes, **kwargs)


def populate_work_dir(settings: BuildSettings, target=TARGET):
    """Lay out already downloaded sources so nothing hits the network."""
    (settings.gcc_source_dir / "gcc").mkdir(parents=True)
    for name in GCC_PREREQUISITES:
        (settings.gcc_source_dir / name).mkdir()

    settings.binutils_source_dir.mkdir(parents=True)
    (settings.ndk_sysroot_dir / target).mkdir(parents=True)


class FakeExecutor:
    """Records invocations instead of running them.

    ``make install`` creates the tool a real install would, so probes after
    an install succeed.
    """

    def __init__(self, settings, fail=None, install_creates_tools=True):
        self.settings = settings
        self.fail = fail or {}
        self.install_creates_tools = install_creates_tools
        self.calls = []

    def run(self, command, args, env, cwd):
        self.calls.append((str(command), list(args), env, cwd))

        s = self.settings
        component = "binutils" if cwd == s.binutils_build_dir else "gcc"

        if command == "make" and args and args[0] == "install":
            step = "install"
        elif command == "make":
            step = "build"
        else:
            step = "configure"

        if (component, step) in self.fail:
            return self.fail[(component, step)]

        if step == "install" and self.install_creates_tools:
            triples, _ = s.resolve()
            if component == "binutils":
                make_executable(s.prefixes.binutils / "bin" / triples.target.tool("ld"))
                make_executable(s.prefixes.binutils / "bin" / triples.target.tool("as"))
            else:
                make_executable(s.prefixes.install / "bin" / triples.target.tool("gcc"))

        return 0

    def invocations(self, component, step):
        s = self.settings
        cwd = s.binutils_build_dir if component == "binutils" else s.gcc_build_dir
        res = []

        for command, args, env, call_cwd in self.calls:
            if call_cwd != cwd:
                continue

            if step == "configure" and command != "make":
                res.append(args)
            elif step == "build" and command == "make" and args[:1] != ["install"]:
                res.append(args)
            elif step == "install" and command == "make" and args[:1] == ["install"]:
                res.append(args)

        return res
