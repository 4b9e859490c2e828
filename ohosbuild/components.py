# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import dataclasses
import enum
from typing import Optional


class Component(enum.Enum):
    BINUTILS = "binutils"
    PREREQUISITES = "prerequisites"
    GCC = "gcc"


class PipelineStep(enum.Enum):
    CONFIGURE = "configure"
    BUILD = "build"
    INSTALL = "install"


@dataclasses.dataclass(frozen=True)
class PatchSet:
    """A directory of ``*.patch`` files applied to one source tree."""

    name: str
    strip: int
    primary: Optional[str] = None


BINUTILS_PATCHES = PatchSet("binutils-patches", strip=1)
GCC_PATCHES = PatchSet(
    "gcc-patches",
    strip=1,
    primary="0001-Add-OpenHarmony-OHOS-target-support-to-GCC.patch",
)
SYSROOT_PATCHES = PatchSet("sysroot-patches", strip=0)

# Prerequisite name -> patches applied inside its (symlink resolved) directory.
PREREQUISITE_PATCHES = {
    "gmp": PatchSet("gmp-patches", strip=0),
    "mpfr": PatchSet("mpfr-patches", strip=0),
    "mpc": PatchSet("mpc-patches", strip=0),
    "isl": PatchSet("isl-patches", strip=0),
    "gettext": PatchSet("gettext-patches", strip=0),
}

# Tools a usable predecessor toolchain must provide.
PREDECESSOR_TOOLS = ("gcc", "g++", "ar", "as", "ld")

# Tools selected through CC, CXX, AR, ... and their *_FOR_TARGET variants.
TOOL_VARIABLES = {
    "CC": "gcc",
    "CXX": "g++",
    "AR": "ar",
    "AS": "as",
    "LD": "ld",
    "NM": "nm",
    "RANLIB": "ranlib",
    "STRIP": "strip",
    "OBJCOPY": "objcopy",
    "OBJDUMP": "objdump",
}

# binutils programs resolved through the cross prefix by gcc's configure.
BINUTILS_TARGET_VARIABLES = {
    "AR": "ar",
    "AS": "as",
    "LD": "ld",
    "NM": "nm",
    "OBJDUMP": "objdump",
    "OBJCOPY": "objcopy",
    "RANLIB": "ranlib",
    "STRIP": "strip",
}
