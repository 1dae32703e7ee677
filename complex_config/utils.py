"""Filesystem helpers."""
import os
import tempfile
from pathlib import Path
from typing import Union

from .conf import SECURE_FILE_MODE


def secure_write(path: Union[str, Path], data: Union[str, bytes], mode: int = SECURE_FILE_MODE) -> Path:
    """Atomically replace ``path`` with ``data``.

    The content goes to a temporary file in the same directory, created
    with ``mode`` permissions, which is then renamed over ``path``. Readers
    see either the old or the new file, never a partial one.
    """
    path = Path(path)
    if isinstance(data, str):
        data = data.encode('utf-8')
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix='.tmp', dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, 'wb') as fp:
            os.fchmod(fp.fileno(), mode)
            fp.write(data)
            fp.flush()
            os.fsync(fp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path
