# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import dataclasses
import os
import pathlib
import shutil

from .downloads import DOWNLOADS, GCC_PREREQUISITES, download_url
from .errors import ExtractError, FetchError
from .logging import log
from .utils import (
    download_to_path,
    exec_and_log,
    extract_tar_member,
    extract_tar_to_directory,
    write_if_different,
)


@dataclasses.dataclass(frozen=True)
class SourceTree:
    """An unpacked source directory.

    The only state kept about a tree is which patches have been applied to
    it, recorded in a stamp file per patch set.
    """

    component: str
    path: pathlib.Path

    def exists(self) -> bool:
        return self.path.is_dir()

    def stamp_path(self, patch_set_name: str) -> pathlib.Path:
        return self.path / (".ohos-%s.applied" % patch_set_name)

    def applied_patches(self, patch_set_name: str) -> list[str]:
        p = self.stamp_path(patch_set_name)
        if not p.exists():
            return []

        with p.open("r", encoding="utf-8") as fh:
            return [line.strip() for line in fh if line.strip()]

    def record_patches(self, patch_set_name: str, keys):
        data = "".join("%s\n" % k for k in keys).encode("utf-8")
        write_if_different(self.stamp_path(patch_set_name), data)


class SourceProvider:
    """Downloads and unpacks the sources of the components we build."""

    def __init__(self, settings, run=exec_and_log):
        self.settings = settings
        self.run = run

    def download(self, key, version=None, url=None) -> pathlib.Path:
        entry = DOWNLOADS[key]
        url = url or download_url(key, version)
        local_name = entry.get("local_name") or url[url.rindex("/") + 1 :]
        local_path = self.settings.downloads_dir / local_name

        sha256 = None
        if version in (None, entry["version"]):
            sha256 = entry.get("sha256")

        download_to_path(url, local_path, sha256)

        return local_path

    def extract(self, archive: pathlib.Path, dest: pathlib.Path) -> pathlib.Path:
        log("extracting %s to %s" % (archive, dest))
        extract_tar_to_directory(archive, dest)

        return dest

    def fetch(self, component: str, version: str) -> SourceTree:
        """Obtain the unpacked source tree of a component version.

        An already extracted tree is used as is.
        """
        tree = SourceTree(
            component, self.settings.work_dir / ("%s-%s" % (component, version))
        )

        if tree.exists():
            log("using existing %s source at %s" % (component, tree.path))
            return tree

        url = self.settings.source_url(component)
        archive = self.download(component, version, url=url)
        self.extract(archive, self.settings.work_dir)

        if not tree.exists():
            raise ExtractError(
                "%s did not contain %s" % (archive.name, tree.path.name)
            )

        return tree

    def prepare_ndk(self, target) -> pathlib.Path:
        """Install the OHOS NDK sysroots, returning the target's sysroot."""
        ndk_dir = self.settings.ndk_dir
        sysroot_dir = self.settings.ndk_sysroot_dir
        target_sysroot = sysroot_dir / str(target)

        if target_sysroot.is_dir():
            log("NDK sysroot for %s already exists at %s" % (target, target_sysroot))
            return target_sysroot

        ndk_archive = self.download("ohos-ndk", url=self.settings.ndk_url)

        log("extracting ohos-sysroot.tar.gz from NDK package")
        sysroot_archive = extract_tar_member(ndk_archive, "ohos-sysroot.tar.gz", ndk_dir)

        # The archive holds sysroot/{aarch64-linux-ohos,arm-linux-ohos,...}.
        tmp = ndk_dir / "tmp-extract"
        self.extract(sysroot_archive, tmp)

        if not (tmp / "sysroot").is_dir():
            raise ExtractError("sysroot directory not found in %s" % sysroot_archive)

        sysroot_dir.mkdir(parents=True, exist_ok=True)
        for entry in sorted((tmp / "sysroot").iterdir()):
            dest = sysroot_dir / entry.name
            if dest.exists():
                log("keeping existing %s" % dest)
                continue

            shutil.move(str(entry), str(dest))

        shutil.rmtree(tmp)
        sysroot_archive.unlink()

        log("NDK sysroot prepared at %s" % sysroot_dir)

        return target_sysroot

    def prerequisite_trees(self, gcc_tree: SourceTree) -> list[SourceTree]:
        """Prerequisite sources inside the gcc tree, resolving symlinks."""
        trees = []

        for name in GCC_PREREQUISITES:
            p = gcc_tree.path / name
            if p.exists():
                trees.append(SourceTree(name, pathlib.Path(os.path.realpath(p))))

        return trees

    def download_prerequisites(self, gcc_tree: SourceTree) -> list[SourceTree]:
        """Fetch gmp, mpfr, mpc, isl and gettext into the gcc source tree."""
        if all((gcc_tree.path / name).exists() for name in GCC_PREREQUISITES):
            log("prerequisites already downloaded")
            return self.prerequisite_trees(gcc_tree)

        script = gcc_tree.path / "contrib" / "download_prerequisites"
        if not script.exists():
            raise FetchError("download_prerequisites script not found in %s" % gcc_tree.path)

        log("downloading gcc prerequisites")
        if self.run([str(script)], cwd=gcc_tree.path, env=dict(os.environ)):
            raise FetchError("failed to download gcc prerequisites")

        return self.prerequisite_trees(gcc_tree)
