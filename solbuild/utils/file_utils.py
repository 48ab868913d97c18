from __future__ import annotations

import os
import pathlib
from os import PathLike
from typing import Union


def is_relative_to(path: pathlib.PurePath, *other: Union[str, PathLike[str]]):
    """
    Return True if the path is relative to another path or False.
    Backported from Python 3.9 (https://github.com/python/cpython/blob/75a6441718dcbc65d993c9544e67e25bef120e82/Lib/pathlib.py#L687-L694)
    """
    try:
        path.relative_to(*other)
        return True
    except ValueError:
        return False


def atomic_write_bytes(path: pathlib.Path, data: bytes) -> None:
    """
    Write `data` to a temporary file next to `path` and move it in place, so readers never see a partial file.
    """
    tmp_path = path.with_name(f".{path.name}.tmp")
    with tmp_path.open("wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp_path, path)
