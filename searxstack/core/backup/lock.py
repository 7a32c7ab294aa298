from __future__ import annotations

import fcntl
import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from searxstack.core.errors import LockHeldError

LOCK_FILE = ".lock"

# path -> (fd, depth); lets Deploy hold the lock while it runs Backup
_held: Dict[str, Tuple[int, int]] = {}
_guard = threading.Lock()


def lock_path_for(backups_dir: str) -> str:
    return os.path.join(backups_dir, LOCK_FILE)


@contextmanager
def stack_lock(path: str) -> Iterator[str]:
    """
    Exclusive, non-blocking lock on `path`. Re-entrant inside one process;
    a holder in another process makes acquisition fail with LockHeldError.
    """
    key = os.path.abspath(path)
    with _guard:
        if key in _held:
            fd, depth = _held[key]
            _held[key] = (fd, depth + 1)
        else:
            os.makedirs(os.path.dirname(key) or ".", exist_ok=True)
            fd = os.open(key, os.O_CREAT | os.O_RDWR, 0o644)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as e:
                os.close(fd)
                raise LockHeldError(path=key) from e
            os.ftruncate(fd, 0)
            os.write(fd, f"{os.getpid()}\n".encode("ascii"))
            _held[key] = (fd, 1)
    try:
        yield key
    finally:
        with _guard:
            fd, depth = _held[key]
            if depth > 1:
                _held[key] = (fd, depth - 1)
            else:
                del _held[key]
                fcntl.flock(fd, fcntl.LOCK_UN)
                os.close(fd)
