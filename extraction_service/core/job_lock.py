"""
Scope locking for extraction runs.

Two extraction passes over the same scope would interleave upserts of the same
primary keys, so a run holds an exclusive lock for its (table, scope) pair.
The guard is a kernel lock on a per-scope file: the kernel drops it when the
owning process exits, so a crashed run never leaves the scope blocked. The file
itself is permanent and only carries the owner PID for diagnostics.
"""

import hashlib
import os
import tempfile
import platform
from pathlib import Path
from typing import Optional

from extraction_service.core.config import get_settings
from extraction_service.core.exceptions import ExtractionAlreadyRunningError
from extraction_service.core.logging_config import get_logger

# Import platform-specific locking
if platform.system() != 'Windows':
    import fcntl
    msvcrt = None
else:
    import msvcrt
    fcntl = None

logger = get_logger(__name__)


def _try_lock(fd: int) -> bool:
    """Non-blocking exclusive lock on an open file; False when another holder has it."""
    try:
        if fcntl is not None:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        else:
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
    except BlockingIOError:
        return False
    except OSError:
        # msvcrt reports a held lock as EDEADLOCK or EACCES
        if msvcrt is not None:
            return False
        raise
    return True


def _unlock(fd: int):
    if fcntl is not None:
        fcntl.flock(fd, fcntl.LOCK_UN)
    else:
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)


class ScopeLock:
    """
    Context manager holding the single-flight lock for one extraction scope.
    Uses file-based locking with platform-specific implementations.
    """

    def __init__(self, table_name: str, scope_fingerprint: str, locks_dir: Optional[str] = None):
        self.table_name = table_name
        self.scope_fingerprint = scope_fingerprint
        self.lock_fd = None

        locks_dir = locks_dir or get_settings().LOCK_DIR
        self.locks_dir = Path(locks_dir) if locks_dir else Path(tempfile.gettempdir()) / "extraction_locks"
        self.locks_dir.mkdir(parents=True, exist_ok=True)

        digest = hashlib.sha1(f"{table_name}|{scope_fingerprint}".encode('utf-8')).hexdigest()
        self.lock_path = self.locks_dir / f"{digest}.lock"

    def acquire_lock(self) -> bool:
        """Acquire the scope lock; False when another run holds it."""
        if self.lock_fd is not None:
            return True

        fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR)
        if not _try_lock(fd):
            os.close(fd)
            logger.warning(f"Extraction of {self.table_name} for {self.scope_fingerprint} is already running")
            return False

        # Content is informational only; the kernel lock decides ownership
        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        os.write(fd, str(os.getpid()).encode())
        self.lock_fd = fd

        logger.debug(f"Acquired scope lock {self.lock_path.name} for {self.table_name} {self.scope_fingerprint}")
        return True

    def release_lock(self):
        """Release the scope lock. The lock file stays; only the kernel lock is dropped."""
        if self.lock_fd is not None:
            try:
                _unlock(self.lock_fd)
            finally:
                os.close(self.lock_fd)
                self.lock_fd = None
            logger.debug(f"Released scope lock for {self.table_name} {self.scope_fingerprint}")

    def __enter__(self):
        if not self.acquire_lock():
            raise ExtractionAlreadyRunningError(self.table_name, self.scope_fingerprint)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release_lock()
