"""Symlink, backup, and permission utilities."""

import shutil
import stat
from datetime import datetime
from pathlib import Path

from dotinstall.logging import get_logger
from dotinstall.models import BackupPolicy

logger = get_logger(__name__)

EXECUTABLE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class BackupConflictError(FileExistsError):
    """Raised when a backup path is taken and the policy forbids replacing it."""


def path_present(path: Path) -> bool:
    """Check if anything occupies a path, dangling symlinks included."""
    return path.is_symlink() or path.exists()


def is_link_to(target: Path, source: Path) -> bool:
    """Check if target is a symlink that resolves to source."""
    if not target.is_symlink():
        return False
    try:
        return target.resolve() == source.resolve()
    except (OSError, RuntimeError):
        # symlink loop
        return False


def remove_target(target: Path) -> None:
    """Remove a target file or directory (symlink or copy)."""
    if target.is_symlink():
        target.unlink()
    elif target.is_dir():
        shutil.rmtree(target)
    elif target.is_file():
        target.unlink()


def unique_backup_path(backup: Path, now: datetime | None = None) -> Path:
    """Return a free timestamped sibling of an occupied backup path."""
    stamp = (now or datetime.now()).strftime('%Y%m%d%H%M%S')
    candidate = backup.with_name(f'{backup.name}.{stamp}')
    counter = 1
    while path_present(candidate):
        candidate = backup.with_name(f'{backup.name}.{stamp}.{counter}')
        counter += 1
    return candidate


def backup_target(
    target: Path,
    *,
    suffix: str = '.backup',
    policy: BackupPolicy = BackupPolicy.TIMESTAMP,
    now: datetime | None = None,
) -> Path | None:
    """Move an existing target out of the way.

    Returns the backup path, or None if there was nothing to back up.
    Raises BackupConflictError under the refuse policy when the backup
    path is already taken.
    """
    if not path_present(target):
        return None

    backup = target.with_name(f'{target.name}{suffix}')
    if path_present(backup):
        if policy == BackupPolicy.REFUSE:
            msg = f'Backup already exists: {backup}'
            raise BackupConflictError(msg)
        if policy == BackupPolicy.OVERWRITE:
            logger.warning('overwriting_existing_backup', backup=str(backup))
            remove_target(backup)
        else:
            backup = unique_backup_path(backup, now)

    target.rename(backup)
    logger.warning('backed_up_target', target=str(target), backup=str(backup))
    return backup


def create_symlink(source: Path, target: Path) -> None:
    """Create an absolute symlink at target pointing to source."""
    if path_present(target):
        msg = f'Target already exists: {target}'
        raise FileExistsError(msg)

    if not source.exists():
        msg = f'Source does not exist: {source}'
        raise FileNotFoundError(msg)

    logger.debug('creating_symlink', target=str(target), source=str(source))
    target.symlink_to(source.absolute(), target_is_directory=source.is_dir())


def is_executable(path: Path) -> bool:
    """Check if a regular file has its owner executable bit set."""
    return path.is_file() and bool(path.stat().st_mode & stat.S_IXUSR)


def make_executable(path: Path) -> bool:
    """Add the executable bits to a file.

    Returns True if the mode changed.
    """
    mode = path.stat().st_mode
    if mode & EXECUTABLE_BITS == EXECUTABLE_BITS:
        return False
    path.chmod(mode | EXECUTABLE_BITS)
    return True


def iter_regular_files(directory: Path) -> list[Path]:
    """List regular files under a directory, recursively, in sorted order."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob('*') if p.is_file() and not p.is_symlink())
