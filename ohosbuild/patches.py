# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import pathlib
import subprocess

from .errors import PatchConflict
from .logging import log, log_raw, warn
from .utils import hash_path


def patch_files(patch_dir: pathlib.Path, primary=None) -> list[pathlib.Path]:
    """Obtain the patches of a directory in the order they're applied.

    Patches are sorted by name, except that the primary patch, if present,
    always comes first.
    """
    if not patch_dir.is_dir():
        return []

    patches = sorted(p for p in patch_dir.glob("*.patch") if p.is_file())

    if primary:
        patches.sort(key=lambda p: p.name != primary)

    return patches


def run_patch(args, cwd) -> int:
    try:
        res = subprocess.run(
            ["patch", *args],
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        log("unable to run patch: %s" % e)
        return 127

    log_raw(res.stdout)

    return res.returncode


def patch_key(patch: pathlib.Path) -> str:
    return "%s %s" % (patch.name, hash_path(patch))


def apply_patches(tree, patch_dir: pathlib.Path, patch_set, run=run_patch) -> int:
    """Apply a patch set to a source tree, skipping applied patches.

    A patch counts as applied when the tree's stamp records it or when it
    reverses cleanly. Patches failing for any other reason are reported as
    warnings and don't stop the remaining patches from being applied.

    Returns the number of patches newly applied.
    """
    patches = patch_files(patch_dir, primary=patch_set.primary)
    if not patches:
        return 0

    recorded = tree.applied_patches(patch_set.name)
    strip = "-p%d" % patch_set.strip
    applied = 0

    for patch in patches:
        key = patch_key(patch)
        if key in recorded:
            continue

        if run(["-R", "--dry-run", "-f", "-s", strip, "-i", str(patch)], tree.path) == 0:
            log("%s already applied; skipping" % patch.name)
            recorded.append(key)
            continue

        log("applying %s to %s" % (patch.name, tree.path))
        res = run([strip, "-N", "--batch", "-i", str(patch)], tree.path)

        if res == 0:
            applied += 1
            recorded.append(key)
        else:
            warn(str(PatchConflict(patch, res)))

    tree.record_patches(patch_set.name, recorded)

    return applied
