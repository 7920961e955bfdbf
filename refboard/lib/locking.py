"""
Lock management for the kanban store.

Uses flock for a single store-wide lock around mutating operations, so two
CLI invocations never interleave a board write with another's index write.
"""

import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


POLL_INTERVAL = 0.1


@contextmanager
def _acquire_lock(lock_file: Path, timeout: float, lock_name: str):
    """
    Internal helper to acquire a file lock.

    Args:
        lock_file: Path to the lock file
        timeout: Seconds to wait for lock
        lock_name: Human-readable name for error messages
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    fd = open(lock_file, 'w')
    start = time.monotonic()

    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            break
        except BlockingIOError:
            if time.monotonic() - start > timeout:
                fd.close()
                raise LockTimeout(f"Could not acquire {lock_name} within {timeout}s")
            time.sleep(POLL_INTERVAL)

    try:
        fd.write(f"{os.getpid()}\n")
        fd.flush()
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()


@contextmanager
def store_lock(kanban_dir: Path, timeout: float = 30):
    """
    Acquire the store-wide lock, yield, release on exit.

    Lock files are never deleted; deleting would let two processes hold
    "exclusive" locks on different inodes with the same path.
    """
    lock_file = kanban_dir / ".locks" / "store.lock"
    with _acquire_lock(lock_file, timeout, "kanban store lock"):
        yield
