# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.


class BuildError(Exception):
    """Base class for errors that abort the pipeline."""


class ConfigurationError(BuildError):
    """Represents an invalid triple or an unsupported target architecture."""


class MissingPredecessor(BuildError):
    """Represents a missing or non-executable stage 1/stage 2 tool."""

    def __init__(self, tool, message=None):
        self.tool = str(tool)
        super().__init__(message or "predecessor tool not found: %s" % self.tool)


class FetchError(BuildError):
    """Represents a failure to download a component's sources."""


class ExtractError(BuildError):
    """Represents a failure to unpack a downloaded archive."""


class PatchConflict(BuildError):
    """Represents a patch that failed for a reason other than being applied.

    This is reported as a warning and never aborts the pipeline.
    """

    def __init__(self, patch, returncode):
        self.patch = patch
        self.returncode = returncode
        super().__init__(
            "patch %s failed with exit code %d" % (patch.name, returncode)
        )


class StepFailure(BuildError):
    """Represents a configure, build or install step that exited non-zero."""

    def __init__(self, step, component, returncode=None, message=None):
        self.step = step
        self.component = component
        self.returncode = returncode

        if message is None:
            message = "%s %s exited %s" % (component, step, returncode)

        super().__init__(message)
