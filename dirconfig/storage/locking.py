"""Cross-process advisory file locking."""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Union

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)


def _acquire(fd: int) -> None:
    if os.name == "nt":
        # msvcrt.locking needs a byte range; lock the first byte.
        # LK_LOCK gives up after ~10 seconds, so keep retrying.
        while True:
            os.lseek(fd, 0, os.SEEK_SET)
            try:
                msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
                return
            except OSError:
                logger.debug("Still waiting for cache lock")
    else:
        fcntl.flock(fd, fcntl.LOCK_EX)


def _release(fd: int) -> None:
    if os.name == "nt":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)


@contextmanager
def exclusive_lock(lock_path: Union[str, Path]) -> Iterator[None]:
    """Hold an exclusive lock on ``lock_path`` for the body of the block.

    Blocks until the lock is free. The lock file is created with mode 0600
    and left in place; the lock is released on every exit path.

    Raises:
        OSError: If the lock file cannot be opened or locked
    """
    lock_path = Path(lock_path)
    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o600)
    try:
        _acquire(fd)
        logger.debug(f"Acquired lock: {lock_path}")
        try:
            yield
        finally:
            _release(fd)
            logger.debug(f"Released lock: {lock_path}")
    finally:
        os.close(fd)
