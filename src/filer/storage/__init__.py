"""Category storage layout.

This module maps file categories to directories, applies the backup
exclusion policy and allocates unique file names within a category.
"""

from filer.storage.allocator import UniqueNameAllocator
from filer.storage.backup import exclude_from_backup, should_exclude_from_backup
from filer.storage.categories import (
    CATEGORY_LAYOUT,
    CategoryLayout,
    FileCategory,
    Filer,
    RootArea,
    category_and_extension,
    get_file_category,
)
from filer.storage.resolver import CategoryResolver

__all__ = [
    "CATEGORY_LAYOUT",
    "CategoryLayout",
    "CategoryResolver",
    "FileCategory",
    "Filer",
    "RootArea",
    "UniqueNameAllocator",
    "category_and_extension",
    "exclude_from_backup",
    "get_file_category",
    "should_exclude_from_backup",
]
