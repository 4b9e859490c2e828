# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import pathlib
import unittest

from ohosbuild.components import Component, PipelineStep
from ohosbuild.config import ToolchainPrefixes
from ohosbuild.environment import (
    EnvironmentBundle,
    compose,
    resolve_build_compiler,
    stage2_tools,
)
from ohosbuild.triples import BuildStage, Triple, Triples


def triples(build, host, target):
    return Triples(Triple(build), Triple(host), Triple(target))


def nothing(path):
    return False


def no_which(name):
    return None


CANADIAN = triples("x86_64-linux-gnu", "aarch64-linux-ohos", "aarch64-linux-ohos")
CROSS = triples("x86_64-linux-gnu", "x86_64-linux-gnu", "aarch64-linux-ohos")
NATIVE = triples("aarch64-linux-ohos", "aarch64-linux-ohos", "aarch64-linux-ohos")

PREFIXES = ToolchainPrefixes(
    install=pathlib.Path("/opt/ohos"),
    stage1=pathlib.Path("/s1"),
    stage2=pathlib.Path("/s2"),
)


class TestEnvironmentBundle(unittest.TestCase):
    def test_process_environment(self):
        bundle = EnvironmentBundle(
            {"CC": "clang"}, ("/a", pathlib.Path("/b")), (("X", "1"),)
        )
        base = {"PATH": "/usr/bin", "CC": "gcc", "HOME": "/root"}

        env = bundle.process_environment(base)

        self.assertEqual(env["PATH"], "/a:/b:/usr/bin")
        self.assertEqual(env["CC"], "clang")
        self.assertEqual(env["HOME"], "/root")
        self.assertNotIn("X", env)
        self.assertEqual(base["CC"], "gcc")

    def test_immutable(self):
        bundle = EnvironmentBundle({"CC": "gcc"})

        with self.assertRaises(TypeError):
            bundle.vars["CC"] = "clang"  # type: ignore[index]

    def test_arguments(self):
        bundle = EnvironmentBundle(assignments=(("CC_FOR_BUILD", "gcc -B/usr/bin"),))

        self.assertEqual(bundle.arguments(), ["CC_FOR_BUILD=gcc -B/usr/bin"])
        self.assertEqual(bundle.assignment("CC_FOR_BUILD"), "gcc -B/usr/bin")
        self.assertIsNone(bundle.assignment("CXX_FOR_BUILD"))


class TestBuildCompiler(unittest.TestCase):
    def test_prefixed_native_compiler(self):
        build = Triple("x86_64-linux-gnu")
        present = {"/usr/bin/x86_64-linux-gnu-gcc"}

        cc, cxx = resolve_build_compiler(build, probe=lambda p: str(p) in present)

        self.assertEqual(cc, "/usr/bin/x86_64-linux-gnu-gcc -B/usr/bin")
        self.assertEqual(cxx, "/usr/bin/x86_64-linux-gnu-g++ -B/usr/bin")

    def test_fallbacks(self):
        build = Triple("x86_64-linux-gnu")

        cc, _ = resolve_build_compiler(
            build, probe=lambda p: str(p) == "/usr/bin/gcc", which=no_which
        )
        self.assertEqual(cc, "/usr/bin/gcc -B/usr/bin")

        cc, _ = resolve_build_compiler(
            build, probe=nothing, which=lambda n: "/opt/bin/%s" % n
        )
        self.assertEqual(cc, "x86_64-linux-gnu-gcc -B/usr/bin")

        cc, _ = resolve_build_compiler(build, probe=nothing, which=no_which)
        self.assertEqual(cc, "gcc -B/usr/bin")


class TestCanadian(unittest.TestCase):
    def compose(self, step, component=Component.GCC):
        return compose(
            BuildStage.STAGE2_CANADIAN,
            CANADIAN,
            PREFIXES,
            step,
            component=component,
            probe=nothing,
            which=no_which,
        )

    def test_host_tools(self):
        env = self.compose(PipelineStep.CONFIGURE)

        self.assertEqual(env.vars["CC"], "aarch64-linux-ohos-gcc")
        self.assertEqual(env.vars["CXX"], "aarch64-linux-ohos-g++")
        self.assertEqual(env.vars["GCC_FOR_TARGET"], "aarch64-linux-ohos-gcc")
        self.assertEqual(env.vars["AR_FOR_TARGET"], "aarch64-linux-ohos-ar")
        self.assertEqual(env.path_prepend[0], "/s1/bin")

    def test_build_compiler_only_assigned(self):
        env = self.compose(PipelineStep.CONFIGURE)

        self.assertNotIn("CC_FOR_BUILD", env.vars)
        self.assertNotIn("CXX_FOR_BUILD", env.vars)
        self.assertEqual(env.vars["CFLAGS_FOR_BUILD"], "-g -O2")

        cc_for_build = env.assignment("CC_FOR_BUILD")
        self.assertEqual(cc_for_build, "gcc -B/usr/bin")
        self.assertFalse(cc_for_build.startswith("aarch64-linux-ohos-"))
        self.assertEqual(env.assignment("CXX_FOR_BUILD"), "g++ -B/usr/bin")

    def test_configure_cache(self):
        env = self.compose(PipelineStep.CONFIGURE)

        self.assertEqual(env.vars["gcc_cv_prog_cxx_stdcxx"], "cxx14")
        self.assertEqual(env.vars["ax_cv_cxx_compile_cxx14_FOR_BUILD"], "yes")
        # host == target, so the cross libtool cache doesn't apply.
        self.assertNotIn("lt_cv_path_LD", env.vars)

    def test_gcc_make_steps(self):
        for step in (PipelineStep.BUILD, PipelineStep.INSTALL):
            with self.subTest(step=step):
                env = self.compose(step)
                self.assertEqual(env.assignment("GCC_FOR_TARGET"), "aarch64-linux-ohos-gcc")
                self.assertIsNone(env.assignment("CC_FOR_BUILD"))
                self.assertNotIn("CC_FOR_BUILD", env.vars)

    def test_binutils_not_on_path(self):
        env = self.compose(PipelineStep.BUILD)

        self.assertNotIn("/opt/ohos/bin", env.path_prepend)

    def test_binutils_steps(self):
        for step in (PipelineStep.CONFIGURE, PipelineStep.BUILD):
            env = self.compose(step, component=Component.BINUTILS)
            self.assertEqual(env.assignment("CC_FOR_BUILD"), "gcc -B/usr/bin")
            self.assertNotIn("CC_FOR_BUILD", env.vars)

        env = self.compose(PipelineStep.INSTALL, component=Component.BINUTILS)
        self.assertEqual(env.assignments, ())


class TestCrossAndNative(unittest.TestCase):
    def test_stage1_configure(self):
        env = compose(
            BuildStage.STAGE1_CROSS, CROSS, PREFIXES, PipelineStep.CONFIGURE, probe=nothing
        )

        self.assertEqual(env.vars["CC"], "gcc")
        self.assertEqual(env.vars["CC_FOR_BUILD"], "gcc")
        self.assertEqual(env.vars["CXX"], "g++")
        self.assertEqual(env.vars["AR_FOR_TARGET"], "aarch64-linux-ohos-ar")
        self.assertEqual(env.vars["CROSS_COMPILE"], "aarch64-linux-ohos-")
        self.assertEqual(env.vars["CFLAGS"], "-g0 -O2")
        self.assertEqual(env.vars["CFLAGS_FOR_TARGET"], " ")
        self.assertEqual(env.vars["libat_cv_have_ifunc"], "no")
        self.assertEqual(env.vars["lt_cv_deplibs_check_method"], "pass_all")
        self.assertEqual(
            env.vars["lt_cv_path_LD"], "/opt/ohos/bin/aarch64-linux-ohos-ld"
        )
        self.assertEqual(env.path_prepend, ("/opt/ohos/bin",))
        self.assertEqual(env.assignments, ())
        self.assertNotIn("BOOT_CFLAGS", env.vars)

    def test_stage1_build_has_no_configure_cache(self):
        env = compose(
            BuildStage.STAGE1_CROSS, CROSS, PREFIXES, PipelineStep.BUILD, probe=nothing
        )

        self.assertNotIn("lt_cv_deplibs_check_method", env.vars)
        self.assertNotIn("libat_cv_have_ifunc", env.vars)

    def test_cross_prefix_override(self):
        env = compose(
            BuildStage.STAGE1_CROSS,
            CROSS,
            PREFIXES,
            PipelineStep.CONFIGURE,
            cross_prefix="ohos-",
            probe=nothing,
        )

        self.assertEqual(env.vars["AR_FOR_TARGET"], "ohos-ar")
        self.assertEqual(env.vars["CROSS_COMPILE"], "ohos-")

    def test_user_cflags(self):
        env = compose(
            BuildStage.STAGE1_CROSS,
            CROSS,
            PREFIXES,
            PipelineStep.BUILD,
            cflags=("-pipe",),
            probe=nothing,
        )

        self.assertEqual(env.vars["CFLAGS"], "-pipe -g0 -O2")

    def test_canadian_cflags_keep_quoting(self):
        env = compose(
            BuildStage.STAGE2_CANADIAN,
            CANADIAN,
            PREFIXES,
            PipelineStep.BUILD,
            cflags=("-DVENDOR=OHOS build", "-pipe"),
            probe=nothing,
            which=no_which,
        )

        self.assertEqual(env.vars["CFLAGS"], "'-DVENDOR=OHOS build' -pipe -g0 -O2")
        self.assertEqual(env.vars["CFLAGS_FOR_TARGET"], env.vars["CFLAGS"])

    def test_canadian_default_cflags(self):
        env = compose(
            BuildStage.STAGE2_CANADIAN,
            CANADIAN,
            PREFIXES,
            PipelineStep.BUILD,
            probe=nothing,
            which=no_which,
        )

        self.assertEqual(env.vars["CFLAGS"], "-g -O2 -g0 -O2")

    def test_native(self):
        env = compose(BuildStage.NATIVE, NATIVE, PREFIXES, PipelineStep.BUILD, probe=nothing)

        for var in ("CC", "CC_FOR_BUILD", "CC_FOR_TARGET"):
            self.assertEqual(env.vars[var], "gcc")
        self.assertNotIn("CROSS_COMPILE", env.vars)
        self.assertEqual(env.vars["BOOT_CFLAGS"], "-g0 -O2")
        self.assertEqual(env.vars["CFLAGS_FOR_TARGET"], "-g0 -O2")

    def test_stage3_unprefixed(self):
        env = compose(
            BuildStage.STAGE3_NATIVE,
            NATIVE,
            PREFIXES,
            PipelineStep.CONFIGURE,
            probe=lambda p: str(p) == "/s2/bin/gcc",
        )

        self.assertEqual(env.vars["CC"], "/s2/bin/gcc")
        self.assertEqual(env.vars["CC_FOR_BUILD"], "/s2/bin/gcc")
        self.assertEqual(env.vars["CC_FOR_TARGET"], "/s2/bin/gcc")
        self.assertEqual(env.vars["AR_FOR_TARGET"], "/s2/bin/ar")
        self.assertEqual(env.path_prepend, ("/opt/ohos/bin", "/s2/bin"))

    def test_stage3_prefixed(self):
        tools = stage2_tools(Triple("aarch64-linux-ohos"), "/s2", probe=nothing)

        self.assertEqual(tools["CC"], "/s2/bin/aarch64-linux-ohos-gcc")
        self.assertEqual(tools["STRIP"], "/s2/bin/aarch64-linux-ohos-strip")


if __name__ == "__main__":
    unittest.main()
