import os
import shutil
from pathlib import Path

# Files Chromium leaves in a profile to claim single-instance ownership
LOCK_FILES = ["SingletonLock", "SingletonCookie", "SingletonSocket"]


def ensure_profile_dir(profile_dir: str | Path) -> Path:
    path = Path(profile_dir).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path


def profile_lock_files(profile_dir: str | Path) -> list[Path]:
    """Lock files currently present in the profile (symlinks count even when dangling)."""
    path = Path(profile_dir).expanduser()
    return [path / name for name in LOCK_FILES if os.path.lexists(path / name)]


def clear_profile_lock(profile_dir: str | Path) -> list[str]:
    """Remove stale Chromium lock files after a crash. Returns removed names.

    Only call this when no browser is using the profile; removing the lock of a
    live browser lets two processes write the same profile.
    """
    from .browser import log

    removed = []
    for lock_path in profile_lock_files(profile_dir):
        try:
            lock_path.unlink()
            removed.append(lock_path.name)
            log(f"Removed stale lock: {lock_path.name}", "○")
        except OSError as e:
            log(f"Failed to remove {lock_path.name}: {e}", "✗")
    return removed


def delete_profile(profile_dir: str | Path) -> dict:
    """Delete the browser profile (logs the user out). Returns what was deleted."""
    from .browser import log

    deleted: dict = {"profile": False, "errors": []}
    path = Path(profile_dir).expanduser()

    if path.exists():
        try:
            shutil.rmtree(path)
            deleted["profile"] = True
            log(f"Deleted profile directory {path}", "✓")
        except OSError as e:
            deleted["errors"].append(f"profile: {e}")
            log(f"Failed to delete profile directory: {e}", "✗")
    else:
        log(f"No profile directory at {path}", "○")

    return deleted
