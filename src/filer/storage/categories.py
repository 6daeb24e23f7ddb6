"""File category definitions for on-disk organization.

This module defines the categories used to classify stored files. Each
category maps to a root area (caches, documents or temporary), a fixed
subdirectory under the product directory, a backup-exclusion flag and a
default file extension. The mapping is a plain lookup table with no side
effects; directory creation lives in :mod:`filer.storage.resolver`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from typing_extensions import Protocol, runtime_checkable


class RootArea(Enum):
    """Platform storage areas a category directory can live under."""

    CACHES = "caches"
    DOCUMENTS = "documents"
    TEMPORARY = "temporary"


class FileCategory(Enum):
    """Categories for classifying stored files.

    Categories:
        THUMBNAIL: Small preview images (caches area)
        FULL_IMAGE: Full size images (caches area)
        AUDIO: Audio recordings (caches area)
        VIDEO: Video recordings (caches area)
        DATABASE: Database files (documents area, included in backups)
        TEMP: Scratch files (temporary area, product root directly)

    Examples:
        >>> FileCategory.THUMBNAIL.directory
        'Thumbs'

        >>> FileCategory.DATABASE.root_area
        <RootArea.DOCUMENTS: 'documents'>
    """

    THUMBNAIL = "thumbnail"
    FULL_IMAGE = "full_image"
    AUDIO = "audio"
    VIDEO = "video"
    DATABASE = "database"
    TEMP = "temp"

    @property
    def layout(self) -> "CategoryLayout":
        return CATEGORY_LAYOUT[self]

    @property
    def root_area(self) -> RootArea:
        """Get the root area this category is stored under."""
        return self.layout.root_area

    @property
    def directory(self) -> Optional[str]:
        """Get the subdirectory name for this category.

        Returns:
            Subdirectory name, or None when the category uses the
            product directory itself (TEMP)

        Examples:
            >>> FileCategory.AUDIO.directory
            'Audio'
            >>> FileCategory.TEMP.directory is None
            True
        """
        return self.layout.subdirectory

    @property
    def excluded_from_backup(self) -> bool:
        return self.layout.exclude_from_backup

    @property
    def extension(self) -> str:
        """Default extension used for generated file names."""
        return self.layout.extension


@dataclass(frozen=True)
class CategoryLayout:
    """Static storage attributes of a category."""

    root_area: RootArea
    subdirectory: Optional[str]
    exclude_from_backup: bool
    extension: str


# Single source of truth for where each category lives
CATEGORY_LAYOUT: Dict[FileCategory, CategoryLayout] = {
    # Cache area, regenerable media
    FileCategory.THUMBNAIL: CategoryLayout(RootArea.CACHES, "Thumbs", True, "jpg"),
    FileCategory.FULL_IMAGE: CategoryLayout(RootArea.CACHES, "Images", True, "jpg"),
    FileCategory.AUDIO: CategoryLayout(RootArea.CACHES, "Audio", True, "m4a"),
    FileCategory.VIDEO: CategoryLayout(RootArea.CACHES, "Video", True, "mp4"),
    # Documents area, user data that must survive backups
    FileCategory.DATABASE: CategoryLayout(
        RootArea.DOCUMENTS, "Database", False, "sqlite"
    ),
    # System temporary area
    FileCategory.TEMP: CategoryLayout(RootArea.TEMPORARY, None, True, "tmp"),
}


@runtime_checkable
class Filer(Protocol):
    """Anything that knows which category it is stored in and its extension.

    Callers can define their own file kinds as long as they expose these two
    methods; the store never needs anything else from them.
    """

    def category(self) -> FileCategory: ...

    def extension(self) -> str: ...


FileKind = Union[FileCategory, Filer]


def get_file_category(name: str) -> FileCategory:
    """Get a category from its value or member name.

    Args:
        name: Category value ('full_image') or member name ('FULL_IMAGE'),
            case-insensitive

    Returns:
        FileCategory enum value

    Raises:
        KeyError: If name is not a known category

    Examples:
        >>> get_file_category('thumbnail')
        <FileCategory.THUMBNAIL: 'thumbnail'>

        >>> get_file_category('Full_Image')
        <FileCategory.FULL_IMAGE: 'full_image'>
    """
    normalized = name.strip().lower().replace("-", "_")
    for category in FileCategory:
        if category.value == normalized:
            return category
    available = ", ".join(c.value for c in FileCategory)
    raise KeyError(f"Unknown file category: '{name}'. Available categories: {available}")


def category_and_extension(kind: FileKind) -> Tuple[FileCategory, str]:
    """Split a file kind into its category and extension.

    Args:
        kind: A FileCategory (uses its default extension) or a Filer

    Returns:
        Tuple of (category, extension without leading dot)

    Raises:
        TypeError: If kind is neither a FileCategory nor a Filer
    """
    if isinstance(kind, FileCategory):
        return kind, kind.extension
    if isinstance(kind, Filer):
        return kind.category(), kind.extension().lstrip(".")
    raise TypeError(
        f"Expected a FileCategory or an object with category() and extension(), "
        f"got {type(kind).__name__}"
    )
