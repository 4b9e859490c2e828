#!/usr/bin/env python3
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

from __future__ import annotations

import argparse
import os
import pathlib
import subprocess
import sys
import venv

ROOT = pathlib.Path(os.path.abspath(__file__)).parent
VENV = ROOT / "venv.dev"
PIP = VENV / "bin" / "pip"
PYTHON = VENV / "bin" / "python"


def bootstrap():
    venv.create(VENV, with_pip=True)

    subprocess.run([str(PIP), "install", "-q", "-e", "%s[dev,test]" % ROOT], check=True)

    os.environ["OHOS_GCC_BOOTSTRAPPED"] = "1"
    os.environ["PATH"] = "%s:%s" % (str(VENV / "bin"), os.environ["PATH"])

    args = [str(PYTHON), __file__, *sys.argv[1:]]

    os.execv(str(PYTHON), args)


def run_command(command: list[str]) -> int:
    print("$ " + " ".join(command))
    returncode = subprocess.run(command, cwd=ROOT).returncode
    print()
    return returncode


def run():
    parser = argparse.ArgumentParser(description="Lint, type check and test.")
    parser.add_argument("--fix", action="store_true", help="Fix problems")
    parser.add_argument(
        "--no-tests", action="store_true", help="Don't run the test suite"
    )
    args = parser.parse_args()

    commands = [
        ["ruff", "check", *(["--fix"] if args.fix else [])],
        ["ruff", "format", *([] if args.fix else ["--check"])],
        ["mypy", "ohosbuild"],
    ]
    if not args.no_tests:
        commands.append(["pytest", "-q"])

    failed = [c[0] for c in commands if run_command(c)]

    if failed:
        print("Checks failed: %s" % ", ".join(failed))
        sys.exit(1)
    else:
        print("Checks passed!")


if __name__ == "__main__":
    try:
        if "OHOS_GCC_BOOTSTRAPPED" not in os.environ:
            bootstrap()
        else:
            run()
    except subprocess.CalledProcessError as e:
        sys.exit(e.returncode)
