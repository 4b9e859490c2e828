# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Ordering of binutils, gcc prerequisites and gcc.

:class:`Orchestrator` owns the decisions of what must exist before a step
can run: binutils are installed before gcc is configured, prerequisites are
fetched and patched before gcc is configured. Checks are made against the
filesystem, so re-running a pipeline skips work already done.
"""

import dataclasses
import os
import pathlib
import shutil
from typing import Mapping, Optional

from .archs import lookup
from .components import (
    BINUTILS_PATCHES,
    GCC_PATCHES,
    PREREQUISITE_PATCHES,
    SYSROOT_PATCHES,
    Component,
    PipelineStep,
)
from .configure_args import binutils_configure_args, gcc_configure_args
from .environment import compose
from .errors import ConfigurationError, StepFailure
from .executor import LocalExecutor
from .logging import log, warn
from .patches import apply_patches, run_patch
from .sources import SourceProvider, SourceTree
from .utils import is_executable, write_if_different
from .validate import validate


@dataclasses.dataclass(frozen=True)
class InstalledArtifact:
    component: Component
    prefix: pathlib.Path
    tools: Mapping[str, pathlib.Path]


class Orchestrator:
    def __init__(
        self,
        settings,
        executor=None,
        sources=None,
        probe=is_executable,
        patch_runner=run_patch,
    ):
        self.settings = settings
        self.triples, self.stage = settings.resolve()
        self.profile = lookup(self.triples.target.machine)
        self.executor = executor or LocalExecutor()
        self.sources = sources or SourceProvider(settings)
        self.probe = probe
        self.patch_runner = patch_runner

        # What is currently being worked on, for error reporting.
        self.step = "setup"

        self._present: dict[Component, SourceTree] = {}
        self._built: dict[Component, InstalledArtifact] = {}
        self._toolset: Optional[dict[str, pathlib.Path]] = None

    def _patch(self, tree, patch_set):
        self.step = "%s patches" % patch_set.name.rsplit("-", 1)[0]
        patch_dir = self.settings.patch_root / patch_set.name

        return apply_patches(tree, patch_dir, patch_set, run=self.patch_runner)

    def _staged(self, prefix: pathlib.Path) -> pathlib.Path:
        """Where files installed under a prefix end up, honoring DESTDIR."""
        if self.settings.destdir:
            return pathlib.Path(self.settings.destdir + str(prefix))

        return prefix

    def check_predecessor(self):
        """Verify the predecessor toolchain once per pipeline."""
        if self._toolset is None:
            self.step = "validate"
            self._toolset = validate(
                self.stage, self.triples, self.settings.prefixes, probe=self.probe
            )

        return self._toolset

    def _run(self, component, step, argv, cwd):
        self.check_predecessor()
        self.step = "%s %s" % (component.value, step.value)

        env = compose(
            self.stage,
            self.triples,
            self.settings.prefixes,
            step,
            component=component,
            cross_prefix=self.settings.cross_prefix(self.triples),
            cflags=self.settings.cflags,
            probe=self.probe,
        )

        res = self.executor.run(argv[0], argv[1:], env, cwd)
        if res:
            raise StepFailure(step.value, component.value, res)

    def log_configuration(self):
        s = self.settings
        log("build stage: %s" % self.stage.description)
        log("CBUILD=%s CHOST=%s CTARGET=%s" % self.triples)
        log("install prefix: %s" % s.prefixes.install)
        log("binutils prefix: %s" % s.prefixes.binutils)
        log("sysroot: %s" % s.effective_sysroot(self.triples))
        log("languages: %s" % ",".join(s.languages))
        log("jobs: %d" % s.jobs)

    # Sources.

    def prepare_ndk(self) -> pathlib.Path:
        self.step = "prepare_ndk"
        return self.sources.prepare_ndk(self.triples.target)

    def apply_sysroot_patches(self):
        sysroot = self.settings.effective_sysroot(self.triples)
        if not sysroot.is_dir():
            warn("sysroot %s does not exist; not patching it" % sysroot)
            return 0

        return self._patch(SourceTree("sysroot", sysroot), SYSROOT_PATCHES)

    def _gcc_source(self) -> SourceTree:
        self.step = "gcc source"
        return self.sources.fetch("gcc", self.settings.gcc_version)

    def download_prerequisites(self) -> SourceTree:
        """Fetch and patch gmp, mpfr, mpc, isl and gettext in the gcc tree."""
        if Component.PREREQUISITES in self._present:
            return self._present[Component.PREREQUISITES]

        gcc_tree = SourceTree("gcc", self.settings.gcc_source_dir)
        if not gcc_tree.exists():
            raise ConfigurationError(
                "gcc source not found at %s; run prepare first" % gcc_tree.path
            )

        self.step = "download_prereqs"
        for tree in self.sources.download_prerequisites(gcc_tree):
            self._patch(tree, PREREQUISITE_PATCHES[tree.component])

        self._present[Component.PREREQUISITES] = gcc_tree

        return gcc_tree

    def ensure_present(self, component) -> SourceTree:
        """Obtain the patched source tree of a component.

        Sources are downloaded and extracted when missing; patches already
        applied are skipped.
        """
        if component in self._present:
            return self._present[component]

        if component is Component.BINUTILS:
            self.step = "binutils source"
            tree = self.sources.fetch("binutils", self.settings.binutils_version)
            self._patch(tree, BINUTILS_PATCHES)

        elif component is Component.PREREQUISITES:
            self._gcc_source()
            return self.download_prerequisites()

        elif component is Component.GCC:
            tree = self._gcc_source()
            self.download_prerequisites()
            self._patch(tree, GCC_PATCHES)

            write_if_different(
                tree.path / "gcc" / "BASE-VER",
                ("%s\n" % self.settings.gcc_version).encode("ascii"),
            )

        else:
            raise ConfigurationError("unknown component: %s" % component)

        self._present[component] = tree

        return tree

    # Installed tools.

    def binutils_tools(self):
        """Installed binutils, or None when the linker is missing."""
        target = self.triples.target
        names = [target.tool("ld")]
        if not self.triples.cross_compiling:
            names.append("ld")

        prefix = self.settings.prefixes.binutils
        for root in (prefix, self._staged(prefix)):
            for name in names:
                path = root / "bin" / name
                if self.probe(path):
                    return {"ld": path}

        return None

    def gcc_tools(self):
        target = self.triples.target
        prefix = self._staged(self.settings.prefixes.install)
        path = prefix / "bin" / target.tool("gcc")

        if self.probe(path):
            return {"gcc": path}

        return None

    def ensure_built(self, component) -> InstalledArtifact:
        """Obtain an installed component, building it only when missing.

        The result is remembered, so later calls never probe or build again.
        """
        if component in self._built:
            return self._built[component]

        if component is Component.BINUTILS:
            prefix = self.settings.prefixes.binutils
            tools = self.binutils_tools()

            if tools:
                log("using existing binutils from %s" % prefix)
            else:
                log("binutils not found in %s; building binutils" % prefix)
                self.build_binutils()
                tools = self.binutils_tools()

            if not tools:
                raise StepFailure(
                    PipelineStep.INSTALL.value,
                    component.value,
                    message="binutils install did not produce %s"
                    % (prefix / "bin" / self.triples.target.tool("ld")),
                )

        elif component is Component.PREREQUISITES:
            # Built in-tree by gcc's own build.
            tree = self.ensure_present(component)
            prefix = tree.path
            tools = {t.component: t.path for t in self.sources.prerequisite_trees(tree)}

        elif component is Component.GCC:
            prefix = self.settings.prefixes.install
            tools = self.gcc_tools()

            if tools:
                log("using existing gcc from %s" % prefix)
            else:
                self.configure_gcc()
                self.build_gcc()
                self.install_gcc()
                tools = self.gcc_tools()

            if not tools:
                raise StepFailure(
                    PipelineStep.INSTALL.value,
                    component.value,
                    message="gcc install did not produce %s"
                    % (prefix / "bin" / self.triples.target.tool("gcc")),
                )

        else:
            raise ConfigurationError("unknown component: %s" % component)

        artifact = InstalledArtifact(component, prefix, tools)
        self._built[component] = artifact

        return artifact

    # Steps.

    def build_binutils(self):
        """Configure, build and install binutils unconditionally."""
        s = self.settings
        self.ensure_present(Component.BINUTILS)
        self.check_predecessor()

        log("configuring binutils %s for %s" % (s.binutils_version, self.triples.target))
        self._run(
            Component.BINUTILS,
            PipelineStep.CONFIGURE,
            binutils_configure_args(s, self.triples, self.stage, self.profile),
            s.binutils_build_dir,
        )
        self._run(
            Component.BINUTILS,
            PipelineStep.BUILD,
            ["make", "-j%d" % s.jobs, "MAKEINFO=true"],
            s.binutils_build_dir,
        )
        self._run(
            Component.BINUTILS,
            PipelineStep.INSTALL,
            ["make", "install", "DESTDIR=%s" % s.destdir, "MAKEINFO=true"],
            s.binutils_build_dir,
        )

    def configure_gcc(self):
        s = self.settings
        self.check_predecessor()
        self.ensure_built(Component.BINUTILS)
        self.apply_sysroot_patches()
        self.ensure_present(Component.GCC)

        log("configuring gcc %s for %s" % (s.gcc_version, self.triples.target))
        self._run(
            Component.GCC,
            PipelineStep.CONFIGURE,
            gcc_configure_args(s, self.triples, self.stage, self.profile, probe=self.probe),
            s.gcc_build_dir,
        )

    def build_gcc(self):
        s = self.settings
        log("building gcc")
        self._run(
            Component.GCC,
            PipelineStep.BUILD,
            ["make", "-j%d" % s.jobs],
            s.gcc_build_dir,
        )

    def install_gcc(self):
        s = self.settings
        log("installing gcc to %s" % s.prefixes.install)
        self._run(
            Component.GCC,
            PipelineStep.INSTALL,
            ["make", "install", "DESTDIR=%s" % s.destdir],
            s.gcc_build_dir,
        )

        bindir = self._staged(s.prefixes.install) / "bin"
        bindir.mkdir(parents=True, exist_ok=True)

        target = self.triples.target
        links = [(target.tool("cc"), target.tool("gcc"))]
        if not self.triples.cross_compiling:
            links.insert(0, ("cc", "gcc"))

        for name, dest in links:
            link = bindir / name
            if link.is_symlink() or link.exists():
                link.unlink()
            os.symlink(dest, link)

        log("gcc installation complete")

    def clean(self):
        self.step = "clean"
        for d in (self.settings.gcc_build_dir, self.settings.binutils_build_dir):
            if d.exists():
                log("removing %s" % d)
                shutil.rmtree(d)
