"""Store configuration management."""

import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import orjson

DEFAULT_PRODUCT = "Filer"


def default_caches_dir() -> Path:
    """Platform caches area (``~/Library/Caches`` or ``$XDG_CACHE_HOME``)."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    xdg = os.getenv("XDG_CACHE_HOME")
    return Path(xdg) if xdg else Path.home() / ".cache"


def default_documents_dir() -> Path:
    """Platform documents area (``~/Documents`` or ``$XDG_DATA_HOME``)."""
    if sys.platform == "darwin":
        return Path.home() / "Documents"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def default_temp_dir() -> Path:
    return Path(tempfile.gettempdir())


@dataclass
class StoreConfig:
    """Configuration for a file store.

    Attributes:
        product_name: Directory created under every root area
        caches_dir: Root of the caches area (platform default if None)
        documents_dir: Root of the documents area (platform default if None)
        temp_dir: Root of the temporary area (system temp dir if None)
        lock_dir: Where per-category lock files live. Defaults to
            ``<caches_dir>/<product_name>/.locks``. It is created the first
            time any category directory is created, including DATABASE and
            TEMP, so a fresh store also writes to the caches area
        max_workers: Size of the background I/O pool
        max_allocation_attempts: Retry cap for unique name generation
        lock_timeout: Seconds to wait for a category lock
    """

    product_name: str = DEFAULT_PRODUCT
    caches_dir: Optional[Path] = None
    documents_dir: Optional[Path] = None
    temp_dir: Optional[Path] = None
    lock_dir: Optional[Path] = None
    max_workers: int = 4
    max_allocation_attempts: int = 1000
    lock_timeout: float = 30

    def __post_init__(self):
        """Fill in platform defaults and normalize paths."""
        name = self.product_name
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"Invalid product name: '{self.product_name}'")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.max_allocation_attempts < 1:
            raise ValueError(
                "max_allocation_attempts must be at least 1, "
                f"got {self.max_allocation_attempts}"
            )

        self.caches_dir = self._as_path(self.caches_dir, default_caches_dir)
        self.documents_dir = self._as_path(self.documents_dir, default_documents_dir)
        self.temp_dir = self._as_path(self.temp_dir, default_temp_dir)
        if self.lock_dir is None:
            self.lock_dir = self.caches_dir / self.product_name / ".locks"
        else:
            self.lock_dir = Path(self.lock_dir).expanduser()

    @staticmethod
    def _as_path(value, default) -> Path:
        if value is None:
            return default()
        return Path(value).expanduser()

    @classmethod
    def load(cls, config_path: Path) -> "StoreConfig":
        """Load configuration from a JSON file.

        Args:
            config_path: Path to config file

        Returns:
            StoreConfig instance (defaults if the file does not exist)
        """
        config_path = Path(config_path)
        if not config_path.exists():
            return cls()

        with open(config_path, "rb") as f:
            data = orjson.loads(f.read())

        return cls(**data)

    def save(self, config_path: Path) -> None:
        """Save configuration to a JSON file.

        Args:
            config_path: Path to config file
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "product_name": self.product_name,
            "caches_dir": str(self.caches_dir),
            "documents_dir": str(self.documents_dir),
            "temp_dir": str(self.temp_dir),
            "lock_dir": str(self.lock_dir),
            "max_workers": self.max_workers,
            "max_allocation_attempts": self.max_allocation_attempts,
            "lock_timeout": self.lock_timeout,
        }

        with open(config_path, "wb") as f:
            f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2))

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Create configuration from environment variables.

        Environment variables:
            FILER_PRODUCT: Product directory name
            FILER_CACHES_DIR: Caches area root
            FILER_DOCUMENTS_DIR: Documents area root
            FILER_TEMP_DIR: Temporary area root
            FILER_MAX_WORKERS: Background pool size

        Returns:
            StoreConfig instance
        """
        kwargs = {}

        if os.getenv("FILER_PRODUCT"):
            kwargs["product_name"] = os.getenv("FILER_PRODUCT")

        if os.getenv("FILER_CACHES_DIR"):
            kwargs["caches_dir"] = Path(os.getenv("FILER_CACHES_DIR"))

        if os.getenv("FILER_DOCUMENTS_DIR"):
            kwargs["documents_dir"] = Path(os.getenv("FILER_DOCUMENTS_DIR"))

        if os.getenv("FILER_TEMP_DIR"):
            kwargs["temp_dir"] = Path(os.getenv("FILER_TEMP_DIR"))

        if os.getenv("FILER_MAX_WORKERS"):
            kwargs["max_workers"] = int(os.getenv("FILER_MAX_WORKERS"))

        return cls(**kwargs)
