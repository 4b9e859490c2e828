# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import dataclasses
import os
import pathlib
import shlex
from typing import Optional

from .archs import OPTIONAL_LIBRARIES
from .downloads import DOWNLOADS, download_url
from .errors import ConfigurationError
from .triples import DEFAULT_TARGET, resolve
from .utils import default_jobs

# Front-ends toggled by LANG_<NAME>=yes|no. C is always built.
LANGUAGE_TOGGLES = {
    "CXX": ("c++", "yes"),
    "D": ("d", "no"),
    "OBJC": ("objc", "no"),
    "GO": ("go", "no"),
    "FORTRAN": ("fortran", "no"),
    "ADA": ("ada", "no"),
    "JIT": ("jit", "no"),
}


def _absolute(value) -> pathlib.Path:
    return pathlib.Path(os.path.abspath(os.path.expanduser(str(value))))


def _path(value) -> Optional[pathlib.Path]:
    if not value:
        return None

    return _absolute(value)


def _resolved_path(value) -> Optional[pathlib.Path]:
    """Absolute path with symlinks resolved, like ``readlink -f``."""
    if not value:
        return None

    return pathlib.Path(os.path.realpath(os.path.expanduser(str(value))))


@dataclasses.dataclass(frozen=True)
class ToolchainPrefixes:
    install: pathlib.Path
    binutils: Optional[pathlib.Path] = None
    stage1: Optional[pathlib.Path] = None
    stage2: Optional[pathlib.Path] = None

    def __post_init__(self):
        if self.binutils is None:
            object.__setattr__(self, "binutils", self.install)

    @classmethod
    def create(cls, install, binutils=None, stage1=None, stage2=None):
        """Construct from user input, normalizing every path."""
        install_path = _path(install)
        if install_path is None:
            raise ConfigurationError("an install prefix is required")

        return cls(
            install=install_path,
            binutils=_path(binutils),
            stage1=_resolved_path(stage1),
            stage2=_resolved_path(stage2),
        )


@dataclasses.dataclass(frozen=True)
class BuildSettings:
    """Everything a pipeline run is parameterized by.

    Triples are kept as given; :meth:`resolve` derives the normalized triples
    and build stage from them on every call.
    """

    work_dir: pathlib.Path
    prefixes: ToolchainPrefixes
    build: str = ""
    host: str = ""
    target: str = DEFAULT_TARGET
    sysroot: Optional[pathlib.Path] = None
    patches_dir: Optional[pathlib.Path] = None
    jobs: int = 1
    languages: tuple[str, ...] = ("c", "c++")
    enabled_libraries: frozenset[str] = frozenset()
    extra_configure_flags: tuple[str, ...] = ()
    cflags: tuple[str, ...] = ()
    cross_compile: Optional[str] = None
    destdir: str = ""
    gcc_version: str = DOWNLOADS["gcc"]["version"]
    binutils_version: str = DOWNLOADS["binutils"]["version"]
    ndk_url: str = download_url("ohos-ndk")
    # Mirror URLs replacing the pinned binutils and gcc source archives.
    binutils_url: Optional[str] = None
    gcc_url: Optional[str] = None

    def resolve(self):
        return resolve(
            self.build,
            self.host,
            self.target,
            default_target=DEFAULT_TARGET,
            stage2_prefix=self.prefixes.stage2,
        )

    @property
    def gcc_source_dir(self) -> pathlib.Path:
        return self.work_dir / ("gcc-%s" % self.gcc_version)

    @property
    def gcc_build_dir(self) -> pathlib.Path:
        return self.work_dir / "build-ohos"

    @property
    def binutils_source_dir(self) -> pathlib.Path:
        return self.work_dir / ("binutils-%s" % self.binutils_version)

    @property
    def binutils_build_dir(self) -> pathlib.Path:
        return self.work_dir / "build-binutils"

    @property
    def downloads_dir(self) -> pathlib.Path:
        return self.work_dir / "downloads"

    @property
    def logs_dir(self) -> pathlib.Path:
        return self.work_dir / "logs"

    @property
    def ndk_dir(self) -> pathlib.Path:
        return self.work_dir / "ndk"

    @property
    def ndk_sysroot_dir(self) -> pathlib.Path:
        return self.ndk_dir / "sysroot"

    def source_url(self, component) -> Optional[str]:
        return {"binutils": self.binutils_url, "gcc": self.gcc_url}.get(component)

    @property
    def patch_root(self) -> pathlib.Path:
        return self.patches_dir or self.work_dir

    def effective_sysroot(self, triples) -> pathlib.Path:
        """The sysroot to build against, defaulting to the NDK's."""
        return self.sysroot or self.ndk_sysroot_dir / triples.target.machine

    def cross_prefix(self, triples) -> str:
        """Prefix of target tool names, ``<target>-`` when cross compiling."""
        if self.cross_compile is not None:
            return self.cross_compile

        if triples.cross_compiling:
            return "%s-" % triples.target.machine
        else:
            return ""

    def disabled_libraries(self, profile) -> list[str]:
        return sorted(
            lib
            for lib in OPTIONAL_LIBRARIES
            if lib not in self.enabled_libraries or lib in profile.disabled_libraries
        )


def languages_from_environ(environ) -> tuple[str, ...]:
    languages = ["c"]

    for key, (language, default) in LANGUAGE_TOGGLES.items():
        if environ.get("LANG_%s" % key, default) == "yes":
            languages.append(language)

    return tuple(languages)


def libraries_from_environ(environ) -> frozenset[str]:
    # LIBGOMP=yes enables libgomp, etc. Everything defaults to off because
    # these libraries need link tests that fail before gcc is bootstrapped.
    return frozenset(
        lib for lib in OPTIONAL_LIBRARIES if environ.get(lib.upper(), "no") == "yes"
    )


def _jobs(value) -> int:
    try:
        jobs = int(value)
    except ValueError:
        raise ConfigurationError("invalid job count: %r" % value) from None

    if jobs < 1:
        raise ConfigurationError("job count must be positive: %d" % jobs)

    return jobs


def load_settings(args, environ=None) -> BuildSettings:
    """Fold parsed command line arguments over environment variables.

    Command line values take precedence, then the environment variables the
    shell front end has always honored, then built-in defaults.
    """
    if environ is None:
        environ = os.environ

    def pick(arg_name, env_name, default=None):
        value = getattr(args, arg_name, None)
        if value:
            return value

        return environ.get(env_name) or default

    work_dir = _absolute(pick("work_dir", "OHOS_GCC_WORK_DIR", os.getcwd()))

    prefixes = ToolchainPrefixes.create(
        install=pick("prefix", "INSTALL_PREFIX", str(work_dir / "install")),
        binutils=pick("binutils_prefix", "BINUTILS_INSTALL_PREFIX"),
        stage1=pick("stage1", "STAGE1_PREFIX"),
        stage2=pick("stage2", "STAGE2_PREFIX"),
    )

    languages_arg = getattr(args, "enable_languages", None)
    if languages_arg:
        languages = tuple(lang.strip() for lang in languages_arg.split(",") if lang.strip())
    else:
        languages = languages_from_environ(environ)

    extra_flags = list(shlex.split(environ.get("EXTRA_CONFIGURE_FLAGS", "")))
    extra_flags.extend(getattr(args, "extra_configure_flag", None) or [])

    cross_compile = environ.get("CROSS_COMPILE")

    return BuildSettings(
        work_dir=work_dir,
        prefixes=prefixes,
        build=pick("build", "CBUILD", ""),
        host=pick("host", "CHOST", ""),
        target=pick("target", "CTARGET", DEFAULT_TARGET),
        sysroot=_resolved_path(pick("sysroot", "SYSROOT")),
        patches_dir=_path(pick("patches_dir", "OHOS_GCC_PATCHES_DIR")),
        jobs=_jobs(pick("jobs", "JOBS", default_jobs())),
        languages=languages,
        enabled_libraries=libraries_from_environ(environ),
        extra_configure_flags=tuple(extra_flags),
        cflags=tuple(shlex.split(environ.get("CFLAGS", ""))),
        cross_compile=cross_compile if cross_compile else None,
        destdir=pick("destdir", "DESTDIR", ""),
        gcc_version=environ.get("GCC_VERSION") or DOWNLOADS["gcc"]["version"],
        binutils_version=pick(
            "binutils_version", "BINUTILS_VERSION", DOWNLOADS["binutils"]["version"]
        ),
        ndk_url=environ.get("NDK_URL") or download_url("ohos-ndk"),
        binutils_url=environ.get("BINUTILS_URL") or None,
        gcc_url=environ.get("GCC_URL") or None,
    )
