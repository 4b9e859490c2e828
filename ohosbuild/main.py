# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import argparse
import sys

from .config import load_settings
from .errors import ConfigurationError
from .logging import reset_logger, set_logger
from .pipeline import COMMANDS, run_command

EPILOG = """\
build types:
  stage 1 (cross compiler): build == host != target
      --target=x86_64-linux-ohos --prefix=/opt/ohos-gcc-stage1
  stage 2 (Canadian Cross): build != host == target, needs --stage1
      --build=x86_64-linux-gnu --host=x86_64-linux-ohos
      --target=x86_64-linux-ohos --stage1=/opt/ohos-gcc-stage1
  stage 3 (native bootstrap, run on OHOS): all equal, needs --stage2
      --build=x86_64-linux-ohos --host=x86_64-linux-ohos
      --target=x86_64-linux-ohos --stage2=/opt/ohos-gcc-stage2
"""


def get_parser():
    parser = argparse.ArgumentParser(
        prog="ohos-gcc-build",
        description="Build a GCC toolchain for OpenHarmony (OHOS) targets",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--target", help="Target triple (default: aarch64-linux-ohos)")
    parser.add_argument("--host", help="Host triple (default: the build triple)")
    parser.add_argument("--build", help="Build triple (default: auto-detected)")
    parser.add_argument("--prefix", help="Installation prefix (default: ./install)")
    parser.add_argument(
        "--sysroot", help="Sysroot to build against (default: ndk/sysroot/TARGET)"
    )
    parser.add_argument(
        "--stage1", help="Stage 1 cross compiler prefix, for stage 2 builds"
    )
    parser.add_argument(
        "--stage2", help="Stage 2 native compiler prefix, for stage 3 builds"
    )
    parser.add_argument("--jobs", help="Number of parallel make jobs")
    parser.add_argument(
        "--enable-languages", help="Comma-separated language list (default: c,c++)"
    )
    parser.add_argument(
        "--binutils-prefix",
        help="Where binutils are installed (default: the install prefix)",
    )
    parser.add_argument(
        "--work-dir",
        help="Directory holding sources, build trees and logs "
        "(default: the current directory)",
    )
    parser.add_argument(
        "--patches-dir",
        help="Directory containing the *-patches directories "
        "(default: the work directory)",
    )
    parser.add_argument("--destdir", help="Staging directory for make install")
    parser.add_argument(
        "--extra-configure-flag",
        action="append",
        help="Additional argument for gcc's configure (may be repeated)",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="all",
        choices=list(COMMANDS),
        help="Pipeline command to run (default: all)",
    )

    return parser


def main(argv=None):
    args = get_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigurationError as e:
        print("error: %s" % e, file=sys.stderr)
        return 1

    settings.logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = settings.logs_dir / ("build.%s.log" % args.command)

    with log_path.open("wb") as log_fh:
        set_logger(args.command, log_fh)
        try:
            return run_command(args.command, settings)
        finally:
            reset_logger()


if __name__ == "__main__":
    sys.exit(main())
