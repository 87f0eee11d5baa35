"""
Stale lock cleanup for the session directory.

A crashed browser leaves its singleton markers behind, and the next client
refuses to open the profile while they exist.
"""

import logging
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

STALE_LOCK_FILES = (
    "lockfile",
    "DevToolsActivePort",
    "SingletonLock",
    "SingletonSocket",
    "SingletonCookie",
)


def reconcile_locks(session_dir: Union[str, Path]) -> list[str]:
    """Remove stale lock markers from `session_dir`. Returns the names removed.

    Never raises: a missing directory or file is fine, and a failed removal is
    logged and skipped.
    """
    directory = Path(session_dir)
    removed: list[str] = []
    for name in STALE_LOCK_FILES:
        lock_path = directory / name
        # Singleton* markers are symlinks that usually dangle after a crash
        if not (lock_path.exists() or lock_path.is_symlink()):
            continue
        try:
            lock_path.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("Could not remove lock file %s: %s", lock_path, e)
            continue
        removed.append(name)
        logger.info("Removed stale lock file: %s", name)
    return removed
