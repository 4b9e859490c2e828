# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Per-step build environments.

:func:`compose` decides, for a build stage and pipeline step, which
compilers and tools a configure/make invocation sees. The result is an
immutable :class:`EnvironmentBundle` handed to the executor; nothing here
reads or writes ``os.environ``.
"""

import dataclasses
import pathlib
import shlex
import shutil
import types
from typing import Mapping, Optional

from .components import (
    BINUTILS_TARGET_VARIABLES,
    TOOL_VARIABLES,
    Component,
    PipelineStep,
)
from .triples import BuildStage
from .utils import is_executable

# Where the build machine's own toolchain lives. Build-time compilers are
# anchored here so collect2 doesn't pick up cross binutils from PATH.
NATIVE_BINDIR = "/usr/bin"

# Values for the OHOS target that autoconf/libtool would otherwise get by
# running test programs, which is impossible when cross compiling. OHOS uses
# a musl-style dynamic loader.
OHOS_LIBTOOL_CACHE = {
    "lt_cv_deplibs_check_method": "pass_all",
    "lt_cv_file_magic_cmd": "$MAGIC_CMD",
    "lt_cv_file_magic_test_file": "",
    "lt_cv_ld_reload_flag": "-r",
    "lt_cv_nm_interface": "BSD nm",
    "lt_cv_objdir": ".libs",
    "lt_cv_prog_compiler_c_o": "yes",
    "lt_cv_prog_compiler_pic": "-fPIC -DPIC",
    "lt_cv_prog_compiler_pic_works": "yes",
    "lt_cv_prog_compiler_static_works": "yes",
    "lt_cv_prog_compiler_wl": "-Wl,",
    "lt_cv_prog_gnu_ld": "yes",
    "lt_cv_sys_global_symbol_pipe": (
        "sed -n -e 's/^.*[\t ]\\([ABCDGIRSTW][ABCDGIRSTW]*\\)[\t ][\t ]*"
        "\\([_A-Za-z][_A-Za-z0-9]*\\)$/\\1 \\2 \\2/p' | sed '/ __gnu_lto/d'"
    ),
    "lt_cv_sys_global_symbol_to_c_name_address": (
        "sed -n -e 's/^: \\([^ ]*\\) $/  {\\\"\\1\\\", (void *) 0},/p' "
        "-e 's/^[ABCDGIRSTW]* \\([^ ]*\\) \\([^ ]*\\)$/  {\\\"\\2\\\", (void *) \\&\\2},/p'"
    ),
    "lt_cv_sys_global_symbol_to_cdecl": (
        "sed -n -e 's/^T .* \\(.*\\)$/extern int \\1();/p' "
        "-e 's/^[ABCDGIRSTW]* .* \\(.*\\)$/extern char \\1;/p'"
    ),
    "lt_cv_sys_max_cmd_len": "1572864",
    "lt_cv_sys_lib_dlsearch_path_spec": "/lib /usr/lib",
    "lt_cv_sys_lib_search_path_spec": "/lib /usr/lib",
    # libstdc++ checks.
    "glibcxx_cv_BSWAP": "yes",
    "ac_cv_func_sched_yield": "yes",
    "ac_cv_func_uselocale": "yes",
}

# The stage 1 cross compiler's output can't run on the build machine, so
# configure can't verify C++14 support of the host compiler by itself.
CANADIAN_CXX14_CACHE = {
    "ax_cv_cxx_compile_cxx14": "yes",
    "ac_cv_prog_cxx_g": "yes",
    "ac_cv_prog_cc_g": "yes",
    "gcc_cv_prog_cxx_stdcxx": "cxx14",
    "ax_cv_cxx_compile_cxx14_FOR_BUILD": "yes",
    "ac_cv_prog_cxx_g_FOR_BUILD": "yes",
}


@dataclasses.dataclass(frozen=True)
class EnvironmentBundle:
    """Environment for one configure, build or install invocation.

    ``vars`` are exported into the child process environment,
    ``path_prepend`` is put in front of the inherited ``PATH`` (first entry
    wins) and ``assignments`` are passed as ``NAME=value`` arguments on the
    command line, so they reach exactly one configure or make invocation
    and are never inherited through the environment.
    """

    vars: Mapping[str, str] = dataclasses.field(default_factory=dict)
    path_prepend: tuple[str, ...] = ()
    assignments: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "vars", types.MappingProxyType(dict(self.vars)))
        object.__setattr__(
            self, "path_prepend", tuple(str(p) for p in self.path_prepend)
        )
        object.__setattr__(self, "assignments", tuple(self.assignments))

    def arguments(self) -> list[str]:
        return ["%s=%s" % (k, v) for k, v in self.assignments]

    def assignment(self, name: str) -> Optional[str]:
        for k, v in self.assignments:
            if k == name:
                return v

        return None

    def process_environment(self, base: Mapping[str, str]) -> dict[str, str]:
        """Derive a child process environment from an inherited one."""
        env = dict(base)

        path = list(self.path_prepend)
        if base.get("PATH"):
            path.append(base["PATH"])
        if path:
            env["PATH"] = ":".join(path)

        env.update(self.vars)

        return env


def resolve_build_compiler(build, probe=is_executable, which=shutil.which):
    """Find the build machine's native C and C++ compilers.

    Returns compiler commands anchored to the native binutils with ``-B``.
    """
    bindir = pathlib.PurePosixPath(NATIVE_BINDIR)

    if probe(bindir / build.tool("gcc")):
        cc, cxx = bindir / build.tool("gcc"), bindir / build.tool("g++")
    elif probe(bindir / "gcc"):
        cc, cxx = bindir / "gcc", bindir / "g++"
    elif which(build.tool("gcc")):
        cc, cxx = build.tool("gcc"), build.tool("g++")
    else:
        cc, cxx = "gcc", "g++"

    return "%s -B%s" % (cc, NATIVE_BINDIR), "%s -B%s" % (cxx, NATIVE_BINDIR)


def stage2_tools(target, stage2_prefix, probe=is_executable) -> dict[str, str]:
    """Tool variables pointing into a stage 2 native toolchain.

    Unprefixed names are preferred; a stage 2 install that only carries
    ``<target>-`` prefixed names is used through those.
    """
    bindir = pathlib.Path(stage2_prefix) / "bin"

    if probe(bindir / "gcc"):
        return {var: str(bindir / tool) for var, tool in TOOL_VARIABLES.items()}
    else:
        return {
            var: str(bindir / target.tool(tool)) for var, tool in TOOL_VARIABLES.items()
        }


def _flags(cflags, *extra) -> str:
    return shlex.join([*cflags, *extra])


def compose(
    stage,
    triples,
    prefixes,
    step,
    component=Component.GCC,
    cross_prefix=None,
    cflags=(),
    probe=is_executable,
    which=shutil.which,
) -> EnvironmentBundle:
    """Build the environment for running ``step`` of ``component``."""
    target = triples.target
    env: dict[str, str] = {}
    path: list[pathlib.Path] = []
    assignments: list[tuple[str, str]] = []
    base_cflags = list(cflags)

    if cross_prefix is None:
        cross_prefix = target.tool("") if triples.cross_compiling else ""

    if stage is BuildStage.STAGE2_CANADIAN:
        # Host and target tools are both the stage 1 cross toolchain, found
        # by name through PATH so every sub-build resolves them the same way.
        path.append(prefixes.stage1 / "bin")

        for var, tool in TOOL_VARIABLES.items():
            env[var] = target.tool(tool)
            env["%s_FOR_TARGET" % var] = target.tool(tool)
        env["GCC_FOR_TARGET"] = target.tool("gcc")
        env["GXX_FOR_TARGET"] = target.tool("g++")

        base_cflags = base_cflags or ["-g", "-O2"]
        env["CFLAGS"] = _flags(base_cflags)
        env["CXXFLAGS"] = _flags(base_cflags)
        env["LDFLAGS"] = ""

        # Only the flags are exported. The build compilers themselves go on
        # the command line: exporting CC_FOR_BUILD races gmp's configure when
        # sub-configures run in parallel.
        env["CFLAGS_FOR_BUILD"] = "-g -O2"
        env["CXXFLAGS_FOR_BUILD"] = "-g -O2"
        env["LDFLAGS_FOR_BUILD"] = ""

        cc_for_build, cxx_for_build = resolve_build_compiler(
            triples.build, probe=probe, which=which
        )

        if (component is Component.BINUTILS and step is not PipelineStep.INSTALL) or (
            component is Component.GCC and step is PipelineStep.CONFIGURE
        ):
            assignments.append(("CC_FOR_BUILD", cc_for_build))
            assignments.append(("CXX_FOR_BUILD", cxx_for_build))

        # The freshly built xgcc is a target binary; make must keep using the
        # stage 1 compiler for target libraries.
        if component is Component.GCC and step is not PipelineStep.CONFIGURE:
            assignments.append(("GCC_FOR_TARGET", target.tool("gcc")))

    elif stage is BuildStage.STAGE3_NATIVE:
        tools = stage2_tools(target, prefixes.stage2, probe=probe)
        env.update(tools)

        for var, value in tools.items():
            env["%s_FOR_TARGET" % var] = value

        env["CC_FOR_BUILD"] = tools["CC"]
        env["CXX_FOR_BUILD"] = tools["CXX"]

        path.append(prefixes.stage2 / "bin")

    elif stage is BuildStage.STAGE1_CROSS:
        # Target tools come from the cross prefix; see below.
        env["CC"] = env["CC_FOR_BUILD"] = "gcc"
        env["CXX"] = env["CXX_FOR_BUILD"] = "g++"

    else:
        for suffix in ("", "_FOR_BUILD", "_FOR_TARGET"):
            env["CC%s" % suffix] = "gcc"
            env["CXX%s" % suffix] = "g++"

    if cross_prefix:
        env["CROSS_COMPILE"] = cross_prefix

    if component is Component.GCC:
        # binutils built for a Canadian Cross run on the target only.
        if stage is not BuildStage.STAGE2_CANADIAN:
            path.insert(0, prefixes.binutils / "bin")

        compile_flags = _flags(base_cflags, "-g0", "-O2")
        env["CFLAGS"] = compile_flags
        env["CXXFLAGS"] = compile_flags

        if stage is BuildStage.STAGE1_CROSS:
            # A single space keeps configure from defaulting to -g -O2.
            env["CFLAGS_FOR_TARGET"] = " "
            env["CXXFLAGS_FOR_TARGET"] = " "
            env["LDFLAGS_FOR_TARGET"] = " "
        else:
            env["CFLAGS_FOR_TARGET"] = compile_flags
            env["CXXFLAGS_FOR_TARGET"] = compile_flags
            env["LDFLAGS_FOR_TARGET"] = env.get("LDFLAGS", "")

        if stage in (BuildStage.NATIVE, BuildStage.STAGE3_NATIVE):
            env["BOOT_CFLAGS"] = compile_flags
            env["BOOT_LDFLAGS"] = ""

        if step is PipelineStep.CONFIGURE:
            env["libat_cv_have_ifunc"] = "no"

            if cross_prefix:
                for var, tool in BINUTILS_TARGET_VARIABLES.items():
                    env.setdefault("%s_FOR_TARGET" % var, cross_prefix + tool)

            if triples.cross_compiling and target.is_ohos:
                env.update(OHOS_LIBTOOL_CACHE)
                binutils_bin = prefixes.binutils / "bin"
                env["lt_cv_path_LD"] = str(binutils_bin / target.tool("ld"))
                env["lt_cv_path_NM"] = str(binutils_bin / target.tool("nm"))

            if stage is BuildStage.STAGE2_CANADIAN:
                env.update(CANADIAN_CXX14_CACHE)

    return EnvironmentBundle(env, tuple(path), tuple(assignments))
