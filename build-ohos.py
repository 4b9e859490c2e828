#!/usr/bin/env python3
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import os
import pathlib
import subprocess
import sys
import venv

ROOT = pathlib.Path(os.path.abspath(__file__)).parent
VENV = ROOT / "venv.build"
PIP = VENV / "bin" / "pip"
PYTHON = VENV / "bin" / "python"


def bootstrap():
    venv.create(VENV, with_pip=True)

    subprocess.run([str(PIP), "install", "-q", "-e", str(ROOT)], check=True)

    os.environ["OHOS_GCC_BOOTSTRAPPED"] = "1"
    os.environ["PATH"] = "%s:%s" % (str(VENV / "bin"), os.environ["PATH"])

    args = [str(PYTHON), __file__, *sys.argv[1:]]

    os.execv(str(PYTHON), args)


def run():
    from ohosbuild.main import main

    # Sources, build trees and logs live next to this script unless told
    # otherwise, like the shell front end always did.
    os.environ.setdefault("OHOS_GCC_WORK_DIR", str(ROOT))
    os.environ["PYTHONUNBUFFERED"] = "1"

    return main()


if __name__ == "__main__":
    try:
        if "OHOS_GCC_BOOTSTRAPPED" not in os.environ:
            bootstrap()
        else:
            sys.exit(run())
    except subprocess.CalledProcessError as e:
        sys.exit(e.returncode)
