"""Unique file name allocation within category directories.

Two allocation modes are supported:

- Opaque: a random ``uuid4`` hex token plus the extension, re-sampled on
  collision.
- Named: the caller's name, disambiguated on collision by appending an
  incrementing counter to the base (``pic.png`` -> ``pic1.png`` ->
  ``pic2.png``).

Both modes stop after ``max_allocation_attempts`` candidates. Paths handed
out with ``reserve=True`` are skipped by later allocations until released,
which keeps concurrent in-flight saves from racing for the same name. The
exclusive publish in the store remains the final arbiter.
"""

import itertools
import logging
import threading
import uuid
from pathlib import Path
from typing import Callable, Dict, Iterator, Set

from filer.errors import AllocationExhaustedError, InvalidArgumentError
from filer.storage.categories import FileCategory, FileKind, category_and_extension
from filer.storage.resolver import CategoryResolver
from filer.utils import disambiguate, validate_file_name

logger = logging.getLogger(__name__)


class UniqueNameAllocator:
    """Hands out file paths that do not collide with existing files.

    Examples:
        >>> allocator = UniqueNameAllocator(resolver)
        >>> allocator.allocate(FileCategory.THUMBNAIL)
        PosixPath('.../Filer/Thumbs/4f1c...e2.jpg')
        >>> allocator.allocate_named(FileCategory.THUMBNAIL, 'pic.png')
        PosixPath('.../Filer/Thumbs/pic.png')
    """

    def __init__(self, resolver: CategoryResolver, max_attempts: int = 1000):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.resolver = resolver
        self.max_attempts = max_attempts
        self._locks: Dict[FileCategory, threading.Lock] = {
            category: threading.Lock() for category in FileCategory
        }
        self._reserved: Set[Path] = set()
        self._reserved_lock = threading.Lock()

    def allocate(self, kind: FileKind, reserve: bool = False) -> Path:
        """Allocate a path with a random, unique file name.

        Args:
            kind: FileCategory or Filer giving category and extension
            reserve: Keep the path reserved until ``release()`` is called

        Returns:
            Path inside the category directory that did not exist when checked

        Raises:
            InvalidArgumentError: If the extension is empty
            AllocationExhaustedError: If no free name was found
            DirectoryCreateError: If the category directory cannot be created
        """
        category, extension = category_and_extension(kind)
        if not extension:
            raise InvalidArgumentError(f"No file extension for {category.value}")

        def candidates() -> Iterator[str]:
            while True:
                yield f"{uuid.uuid4().hex}.{extension}"

        return self._allocate(category, candidates, reserve)

    def allocate_named(self, kind: FileKind, name: str, reserve: bool = False) -> Path:
        """Allocate a path for a caller-supplied file name.

        The name is validated and cleaned for the file system. When the
        cleaned name is taken, a counter is appended to its base.

        Args:
            kind: FileCategory or Filer giving the category
            name: File name including extension
            reserve: Keep the path reserved until ``release()`` is called

        Returns:
            Path inside the category directory that did not exist when checked

        Raises:
            InvalidArgumentError: If the name is malformed
            AllocationExhaustedError: If no free name was found
            DirectoryCreateError: If the category directory cannot be created
        """
        category, _ = category_and_extension(kind)
        cleaned = validate_file_name(name)

        def candidates() -> Iterator[str]:
            yield cleaned
            counter = 1
            while True:
                yield disambiguate(cleaned, counter)
                counter += 1

        return self._allocate(category, candidates, reserve)

    def _allocate(
        self,
        category: FileCategory,
        candidates: Callable[[], Iterator[str]],
        reserve: bool,
    ) -> Path:
        directory = self.resolver.resolve_directory(category)

        with self._locks[category]:
            for file_name in itertools.islice(candidates(), self.max_attempts):
                path = directory / file_name
                if self._is_taken(path):
                    continue
                if reserve:
                    with self._reserved_lock:
                        self._reserved.add(path)
                return path

        logger.error(
            f"Could not allocate a unique name in {directory} after "
            f"{self.max_attempts} attempts"
        )
        raise AllocationExhaustedError(
            f"No unique file name for {category.value} after {self.max_attempts} attempts"
        )

    def _is_taken(self, path: Path) -> bool:
        with self._reserved_lock:
            if path in self._reserved:
                return True
        return path.exists() or path.is_symlink()

    def is_reserved(self, path: Path) -> bool:
        with self._reserved_lock:
            return Path(path) in self._reserved

    def release(self, path: Path) -> None:
        """Release a reservation made with ``reserve=True``."""
        with self._reserved_lock:
            self._reserved.discard(Path(path))
