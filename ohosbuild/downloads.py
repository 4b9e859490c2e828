# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

# Entries without a sha256 are downloaded without integrity verification.
# Versions can be overridden per build (see config.py), in which case the
# {version} placeholder in the URL is expanded with the overriding value.
DOWNLOADS = {
    "binutils": {
        "url": "https://ftp.gnu.org/gnu/binutils/binutils-{version}.tar.xz",
        "version": "2.43",
    },
    "gcc": {
        "url": "https://gcc.gnu.org/pub/gcc/releases/gcc-{version}/gcc-{version}.tar.xz",
        "version": "15.2.0",
    },
    "ohos-ndk": {
        "url": "https://cidownload.openharmony.cn/version/Daily_Version/LLVM-19/20260114_061434/version-Daily_Version-LLVM-19-20260114_061434-LLVM-19.tar.gz",
        "version": "LLVM-19-20260114_061434",
        "local_name": "ndk-llvm.tar.gz",
    },
}

# Sources fetched by gcc's contrib/download_prerequisites into the gcc tree.
GCC_PREREQUISITES = ("gmp", "mpfr", "mpc", "isl", "gettext")

GCC_BUG_URL = "https://github.com/sanchuanhehe/ohos-gcc"


def download_url(key, version=None):
    entry = DOWNLOADS[key]
    return entry["url"].format(version=version or entry["version"])
