# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

from .downloads import GCC_BUG_URL
from .triples import BuildStage
from .utils import is_executable

# Features every gcc we produce is configured with.
GCC_FEATURE_FLAGS = [
    "--enable-checking=release",
    "--enable-__cxa_atexit",
    "--enable-default-pie",
    "--enable-default-ssp",
    "--enable-linker-build-id",
    "--enable-link-serialization=2",
    "--disable-cet",
    "--disable-fixed-point",
    "--disable-libstdcxx-pch",
    "--disable-multilib",
    "--disable-nls",
    "--disable-werror",
    "--disable-symvers",
    "--disable-libssp",
]

RUNTIME_FLAGS = ["--enable-shared", "--enable-threads", "--enable-tls"]


def binutils_configure_args(settings, triples, stage, profile) -> list[str]:
    source_dir = settings.binutils_source_dir

    args = [
        str(source_dir / "configure"),
        "--prefix=%s" % settings.prefixes.binutils,
        "--build=%s" % triples.build,
        "--host=%s" % triples.host,
        "--target=%s" % triples.target,
        "--disable-nls",
        "--disable-werror",
        "--disable-multilib",
        "--disable-gprofng",
        "--enable-default-hash-style=%s" % profile.hash_style,
        "--with-pkgversion=OHOS Binutils %s" % settings.binutils_version,
    ]

    sysroot = settings.effective_sysroot(triples)
    if sysroot:
        args.append("--with-sysroot=%s" % sysroot)

    # Build-time tools of a Canadian Cross must not load target plugins.
    if stage is BuildStage.STAGE2_CANADIAN:
        args.append("--disable-plugins")

    return args


def gcc_configure_args(settings, triples, stage, profile, probe=is_executable) -> list[str]:
    """Assemble the gcc configure command line.

    ``--with-as``/``--with-ld`` are only passed for binutils that are
    actually installed at the binutils prefix.
    """
    prefix = settings.prefixes.install
    canadian = stage is BuildStage.STAGE2_CANADIAN

    args = [
        str(settings.gcc_source_dir / "configure"),
        "--prefix=%s" % prefix,
        "--mandir=%s" % (prefix / "share" / "man"),
        "--infodir=%s" % (prefix / "share" / "info"),
        "--build=%s" % triples.build,
        "--host=%s" % triples.host,
        "--target=%s" % triples.target,
        "--with-pkgversion=OHOS GCC %s" % settings.gcc_version,
        "--with-bugurl=%s" % GCC_BUG_URL,
    ]

    if canadian:
        # The OHOS sysroot may not ship zlib; use the bundled one.
        args.append("--enable-host-pie")
        args.append("--with-build-time-tools=%s" % (settings.prefixes.stage1 / "bin"))
    else:
        args.append("--with-system-zlib")

    args.extend(GCC_FEATURE_FLAGS)
    args.append("--enable-languages=%s" % ",".join(settings.languages))
    args.extend(profile.configure_args())

    if not (triples.build == triples.host == triples.target):
        args.append("--disable-bootstrap")

    sysroot = settings.effective_sysroot(triples)
    if triples.cross_compiling and sysroot:
        args.append("--with-sysroot=%s" % sysroot)

    args.extend(RUNTIME_FLAGS)
    args.extend("--disable-%s" % lib for lib in settings.disabled_libraries(profile))

    binutils_bin = settings.prefixes.binutils / "bin"
    for tool in ("as", "ld"):
        path = binutils_bin / triples.target.tool(tool)
        if probe(path):
            args.append("--with-%s=%s" % (tool, path))

    args.extend(settings.extra_configure_flags)

    return args
