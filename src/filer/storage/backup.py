"""Backup-exclusion policy for category directories.

Directories holding regenerable data are marked so backup tools skip them.
The marker is a ``CACHEDIR.TAG`` file as described by the Cache Directory
Tagging Standard (https://bford.info/cachedir/), which is honoured by
common backup software.
"""

import logging
from pathlib import Path

from filer.storage.categories import FileCategory

logger = logging.getLogger(__name__)

CACHEDIR_TAG = "CACHEDIR.TAG"
CACHEDIR_SIGNATURE = "Signature: 8a477f597d28d172789f06886806bc55\n"
CACHEDIR_CONTENT = (
    CACHEDIR_SIGNATURE
    + "# This file is a cache directory tag created by filer.\n"
    + "# For information about cache directory tags, see:\n"
    + "#\thttps://bford.info/cachedir/\n"
)


def should_exclude_from_backup(category: FileCategory) -> bool:
    """Check whether a category's directory should be excluded from backups.

    Args:
        category: File category

    Returns:
        True for every category except DATABASE

    Examples:
        >>> should_exclude_from_backup(FileCategory.THUMBNAIL)
        True
        >>> should_exclude_from_backup(FileCategory.DATABASE)
        False
    """
    return category.excluded_from_backup


def is_excluded_from_backup(directory: Path) -> bool:
    """Check whether a directory carries a valid backup-exclusion tag."""
    tag_path = Path(directory) / CACHEDIR_TAG
    try:
        with open(tag_path, "r") as f:
            return f.read(len(CACHEDIR_SIGNATURE)) == CACHEDIR_SIGNATURE
    except OSError:
        return False


def exclude_from_backup(directory: Path) -> bool:
    """Mark a directory so that backup tools skip its contents.

    Failures are logged and reported through the return value only; the
    directory stays usable either way.

    Args:
        directory: Directory to mark

    Returns:
        True if the marker was written
    """
    tag_path = Path(directory) / CACHEDIR_TAG
    try:
        with open(tag_path, "w") as f:
            f.write(CACHEDIR_CONTENT)
    except OSError as e:
        logger.error(f"Could not exclude {directory} from backup: {e}")
        return False

    logger.debug(f"Excluded {directory} from backup")
    return True
