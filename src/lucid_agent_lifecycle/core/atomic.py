"""
Atomic file replacement shared by the broker config splice and agent init.

temp file in the target directory + fsync + os.replace + fsync(dir).

Symlinks are followed: the link's target is replaced and the link kept.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional


def _fsync_dir(path: Path) -> None:
    """
    Ensure directory metadata is flushed so atomic rename is durable.
    """
    fd = os.open(str(path), os.O_DIRECTORY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def _copy_owner(src: Path, dst: Path) -> None:
    st = src.stat()
    cur = dst.stat()
    if (st.st_uid, st.st_gid) != (cur.st_uid, cur.st_gid):
        os.chown(dst, st.st_uid, st.st_gid)


def atomic_write_text(
    path: Path,
    content: str,
    *,
    mode_from: Optional[Path] = None,
    errors: str = "strict",
) -> None:
    """
    Replace path with content so readers only ever see the old or the new file.

    Args:
        path: Destination file. If it is a symlink, its target is replaced.
        content: Full new text. Written verbatim (no newline translation).
        mode_from: Copy permission bits and owner/group from this file onto
                   the new one. NamedTemporaryFile creates 0600 files owned
                   by the caller, which the broker may not be able to read.
        errors: Encoding error handler; "surrogateescape" writes back bytes
                that were decoded with the same handler unchanged.

    Raises:
        OSError: On any write, fsync, chown or rename failure. The temp file
                 is removed and the original left untouched.
    """
    path = path.resolve()

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        errors=errors,
        newline="",
        delete=False,
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    ) as tf:
        tmp_path = Path(tf.name)
        try:
            tf.write(content)
            tf.flush()
            os.fsync(tf.fileno())
        except BaseException:
            tf.close()
            tmp_path.unlink(missing_ok=True)
            raise

    try:
        if mode_from is not None:
            shutil.copymode(mode_from, tmp_path)
            _copy_owner(mode_from, tmp_path)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    _fsync_dir(path.parent)
