# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import os
import pathlib

from .utils import exec_and_log


class LocalExecutor:
    """Runs configure and make on the local machine.

    Output is streamed into the active log. The child environment is the
    inherited one with the bundle's path and variables applied; bundle
    assignments are appended to the command line.
    """

    def __init__(self, environ=None):
        self.environ = os.environ if environ is None else environ

    def run(self, command, args, env, cwd: pathlib.Path) -> int:
        cwd.mkdir(parents=True, exist_ok=True)

        argv = [str(command), *args, *env.arguments()]

        return exec_and_log(argv, cwd, env.process_environment(self.environ))
