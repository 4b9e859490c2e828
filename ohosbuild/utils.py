# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import gzip
import hashlib
import http.client
import multiprocessing
import os
import pathlib
import subprocess
import tarfile
import time
import urllib.error
import urllib.request
from typing import Optional

import zstandard

from .errors import ExtractError, FetchError
from .logging import log, warn


def hash_path(p: pathlib.Path):
    h = hashlib.sha256()

    with p.open("rb") as fh:
        while True:
            chunk = fh.read(65536)
            if not chunk:
                break

            h.update(chunk)

    return h.hexdigest()


def write_if_different(p: pathlib.Path, data: bytes):
    """Write a file if it is missing or its content is different."""
    if p.exists():
        with p.open("rb") as fh:
            existing = fh.read()
        write = existing != data
    else:
        write = True

    if write:
        with p.open("wb") as fh:
            fh.write(data)


def is_executable(path) -> bool:
    """Whether a path is an existing regular file we are allowed to execute."""
    return os.path.isfile(path) and os.access(path, os.X_OK)


def default_jobs() -> int:
    return multiprocessing.cpu_count()


class IntegrityError(FetchError):
    """Represents an integrity error when downloading a URL."""


def secure_download_stream(url, sha256: Optional[str]):
    """Download a URL to a stream of chunks.

    If a sha256 is given and the integrity of the download fails, an
    IntegrityError is raised.
    """
    h = hashlib.sha256()
    length = 0

    with urllib.request.urlopen(url) as fh:
        if not url.endswith(".gz") and fh.info().get("Content-Encoding") == "gzip":
            fh = gzip.GzipFile(fileobj=fh)

        while True:
            chunk = fh.read(65536)
            if not chunk:
                break

            h.update(chunk)
            length += len(chunk)

            yield chunk

    digest = h.hexdigest()

    if sha256 and digest != sha256:
        raise IntegrityError(
            "integrity mismatch on %s: wanted sha256=%s; got size=%d, sha256=%s"
            % (url, sha256, length, digest)
        )


def download_to_path(url: str, path: pathlib.Path, sha256: Optional[str] = None):
    """Download a URL to a filesystem path, possibly with verification.

    An existing file is kept as long as it passes the (optional) integrity
    check.
    """

    # We download to a temporary file and rename at the end so there's
    # no chance of the final file being partially written.
    if path.exists():
        if not sha256 or hash_path(path) == sha256:
            log("%s exists; not downloading again" % path)
            return

        warn("existing %s has the wrong hash; removing" % path)
        path.unlink()

    log("downloading %s to %s" % (url, path))
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name("%s.tmp" % path.name)

    for attempt in range(5):
        try:
            try:
                with tmp.open("wb") as fh:
                    for chunk in secure_download_stream(url, sha256):
                        fh.write(chunk)

                break
            except IntegrityError:
                tmp.unlink()
                raise
        except http.client.HTTPException as e:
            warn("HTTP exception on %s; retrying: %s" % (url, e))
            time.sleep(2**attempt)
        except urllib.error.URLError as e:
            warn("urllib error on %s; retrying: %s" % (url, e))
            time.sleep(2**attempt)
        # Connection resets and timeouts while reading the body.
        except OSError as e:
            warn("I/O error on %s; retrying: %s" % (url, e))
            time.sleep(2**attempt)
    else:
        tmp.unlink(missing_ok=True)
        raise FetchError("download failed after multiple retries: %s" % url)

    tmp.rename(path)
    log("successfully downloaded %s" % url)


def extract_tar_to_directory(source: pathlib.Path, dest: pathlib.Path):
    """Extract a (possibly compressed) tar archive into a directory.

    ``.tar.zst`` archives are decompressed with zstandard; everything else
    is left to tarfile's compression detection.
    """
    dest.mkdir(parents=True, exist_ok=True)

    try:
        if source.name.endswith(".zst"):
            with source.open("rb") as fh:
                dctx = zstandard.ZstdDecompressor()
                with dctx.stream_reader(fh) as reader:
                    with tarfile.open(mode="r|", fileobj=reader) as tf:
                        tf.extractall(dest)
        else:
            with tarfile.open(source, "r") as tf:
                tf.extractall(dest)
    except (OSError, tarfile.TarError, zstandard.ZstdError) as e:
        raise ExtractError("failed to extract %s: %s" % (source, e)) from e


def extract_tar_member(source: pathlib.Path, member: str, dest: pathlib.Path):
    """Extract a single named member of a tar archive into a directory."""
    dest.mkdir(parents=True, exist_ok=True)

    try:
        with tarfile.open(source, "r") as tf:
            for ti in tf:
                if ti.name.removeprefix("./") == member:
                    tf.extract(ti, dest)
                    return dest / ti.name
    except (OSError, tarfile.TarError) as e:
        raise ExtractError("failed to extract %s from %s: %s" % (member, source, e)) from e

    raise ExtractError("%s not found in %s" % (member, source))


def exec_and_log(args, cwd, env) -> int:
    """Run a process, streaming its combined output into the log.

    Returns the exit code of the process.
    """
    log("$ %s" % " ".join(str(a) for a in args))

    try:
        p = subprocess.Popen(
            [str(a) for a in args],
            cwd=cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        log("unable to execute %s: %s" % (args[0], e))
        return 127

    assert p.stdout is not None
    for line in iter(p.stdout.readline, b""):
        log(line.rstrip())

    p.wait()

    if p.returncode:
        log("process exited %d" % p.returncode)

    return p.returncode
