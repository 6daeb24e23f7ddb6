"""filer: Categorized asynchronous file storage."""

__version__ = "0.1.0"

from filer.config import StoreConfig
from filer.storage.categories import FileCategory, Filer
from filer.store import FileStore

__all__ = ["FileCategory", "FileStore", "Filer", "StoreConfig", "__version__"]
