"""Category directory resolution.

Maps a category to its directory under the configured root areas and
creates it on first use. Directory existence is re-checked on every call so
that a directory removed by a category purge is transparently recreated.
"""

import logging
from pathlib import Path
from typing import Dict, Tuple

from filelock import FileLock, Timeout

from filer.config import StoreConfig
from filer.errors import DirectoryCreateError, FilerLockError
from filer.storage.backup import exclude_from_backup, should_exclude_from_backup
from filer.storage.categories import FileCategory, RootArea

logger = logging.getLogger(__name__)


class CategoryResolver:
    """Resolves and lazily creates category directories.

    First creation of a directory is serialized per category with a file
    lock, so backup exclusion is applied once and creation errors are
    reported once even when many operations race on a fresh store.

    Examples:
        >>> resolver = CategoryResolver(StoreConfig(caches_dir='/tmp/caches'))
        >>> resolver.directory_for(FileCategory.THUMBNAIL)
        PosixPath('/tmp/caches/Filer/Thumbs')
    """

    def __init__(self, config: StoreConfig):
        self.config = config
        self._locks: Dict[FileCategory, FileLock] = {
            category: FileLock(
                str(config.lock_dir / f"{category.value}.lock"),
                timeout=config.lock_timeout,
            )
            for category in FileCategory
        }

    def root_for(self, category: FileCategory) -> Path:
        """Get the root area directory for a category."""
        area = category.root_area
        if area is RootArea.CACHES:
            return self.config.caches_dir
        if area is RootArea.DOCUMENTS:
            return self.config.documents_dir
        return self.config.temp_dir

    def directory_for(self, category: FileCategory) -> Path:
        """Get the directory path for a category without touching the disk.

        Args:
            category: File category

        Returns:
            ``<root>/<product>/<subdirectory>``, or ``<root>/<product>`` for TEMP
        """
        result = self.root_for(category) / self.config.product_name
        if category.directory:
            result = result / category.directory
        return result

    def ensure_directory(self, category: FileCategory) -> Tuple[Path, bool]:
        """Make sure a category directory exists.

        An existing directory is returned without touching the lock directory.
        Otherwise ``config.lock_dir`` is created first, even for categories
        outside the caches area.

        Args:
            category: File category

        Returns:
            Tuple of (directory path, whether this call created it)

        Raises:
            DirectoryCreateError: If the directory cannot be created or the
                path is taken by something that is not a directory
            FilerLockError: If the category lock cannot be acquired
        """
        directory = self.directory_for(category)
        if directory.is_dir():
            return directory, False

        try:
            self.config.lock_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating lock directory {self.config.lock_dir}: {e}")
            raise DirectoryCreateError(
                f"Cannot create lock directory at {self.config.lock_dir}: {e}"
            ) from e

        try:
            with self._locks[category]:
                return directory, self._create_locked(category, directory)
        except Timeout as e:
            raise FilerLockError(
                f"Timeout acquiring lock for {category.value} after "
                f"{self.config.lock_timeout} seconds"
            ) from e

    def _create_locked(self, category: FileCategory, directory: Path) -> bool:
        """Create a category directory with its lock already acquired."""
        # Another operation may have won the race while we waited
        if directory.is_dir():
            return False
        if directory.exists():
            logger.error(f"Cannot use {directory} for {category.value}: not a directory")
            raise DirectoryCreateError(
                f"Path for {category.value} exists and is not a directory: {directory}"
            )

        try:
            directory.mkdir(parents=True, exist_ok=False)
        except FileExistsError:
            if directory.is_dir():
                return False
            raise DirectoryCreateError(
                f"Path for {category.value} exists and is not a directory: {directory}"
            )
        except OSError as e:
            logger.error(f"File error creating {directory}: {e}")
            raise DirectoryCreateError(
                f"Cannot create directory for {category.value}: {e}"
            ) from e

        logger.debug(f"Created directory {directory} for {category.value}")
        if should_exclude_from_backup(category):
            exclude_from_backup(directory)
        return True

    def resolve_directory(self, category: FileCategory) -> Path:
        """Get a category directory, creating it if needed.

        Args:
            category: File category

        Returns:
            Path to an existing directory

        Raises:
            DirectoryCreateError: If the directory cannot be created
            FilerLockError: If the category lock cannot be acquired
        """
        directory, _ = self.ensure_directory(category)
        return directory
