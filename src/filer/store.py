"""Asynchronous categorized file store.

``FileStore`` is the main entry point. Every public operation validates its
arguments on the calling thread, runs the file system work on a background
thread pool and delivers the outcome on a single result context:

    >>> with FileStore(StoreConfig(caches_dir=tmp)) as store:
    ...     future = store.save(b"AB", FileCategory.THUMBNAIL, name="pic.png")
    ...     future.result()
    PosixPath('.../Filer/Thumbs/pic.png')

Completions receive the resulting path (or bytes, for ``read``) on success
and ``None`` on failure. Failures never cross the asynchronous boundary as
exceptions; they are logged and reported as ``None``.
"""

import logging
import os
import shutil
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from typing_extensions import TypedDict

from filer.config import StoreConfig
from filer.errors import (
    AllocationExhaustedError,
    DeleteError,
    FilerError,
    InvalidArgumentError,
    NotFoundError,
    ReadError,
    WriteError,
)
from filer.guard import BackgroundWorkGuard, InFlightGuard
from filer.operations import Operation, OperationKind, OperationState
from filer.storage.allocator import UniqueNameAllocator
from filer.storage.backup import CACHEDIR_TAG
from filer.storage.categories import (
    FileCategory,
    FileKind,
    category_and_extension,
)
from filer.storage.resolver import CategoryResolver
from filer.utils import validate_file_name

logger = logging.getLogger(__name__)

PathCallback = Callable[[Optional[Path]], None]
BytesCallback = Callable[[Optional[bytes]], None]
PathLike = Union[str, os.PathLike]


class CategoryInfo(TypedDict):
    """Summary of one category directory."""

    category: str
    path: str
    root_area: str
    exists: bool
    file_count: int
    total_bytes: int
    excluded_from_backup: bool


class FileStore:
    """Categorized file store with asynchronous I/O.

    Args:
        config: Store configuration (defaults from ``StoreConfig()``)
        guard: Background-work guard bracketing each operation
        result_executor: Object with ``submit(fn, *args)`` on which all
            completions run. Defaults to a single dedicated thread named
            ``filer-result`` owned by the store.

    Examples:
        >>> store = FileStore(StoreConfig(caches_dir='/tmp/caches'))
        >>> store.save(b'data', FileCategory.AUDIO, callback=print)
        >>> store.delete_temp_files()
        >>> store.close()
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        guard: Optional[BackgroundWorkGuard] = None,
        result_executor: Optional[Any] = None,
    ):
        self.config = config or StoreConfig()
        self.guard = guard if guard is not None else InFlightGuard()
        self.resolver = CategoryResolver(self.config)
        self.allocator = UniqueNameAllocator(
            self.resolver, max_attempts=self.config.max_allocation_attempts
        )

        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="filer-io"
        )
        self._owns_result_executor = result_executor is None
        if result_executor is None:
            result_executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="filer-result"
            )
        self._result_executor = result_executor
        self._closed = False
        # Operations dispatched but not yet delivered
        self._pending = 0
        self._idle = threading.Condition()

    def __enter__(self) -> "FileStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self, wait: bool = True) -> None:
        """Stop accepting operations and shut down the worker pools.

        With an injected result executor, ``wait=True`` also waits for that
        executor to run the outstanding completions, so it must not be
        called from the result context itself.

        Args:
            wait: Block until every dispatched operation has delivered its
                completion
        """
        self._closed = True
        self._executor.shutdown(wait=wait)
        if wait:
            with self._idle:
                self._idle.wait_for(lambda: self._pending == 0)
        if self._owns_result_executor:
            self._result_executor.shutdown(wait=wait)

    # =========================================================================
    # Public operations
    # =========================================================================

    def resolve_path(
        self, kind: FileKind, callback: Optional[PathCallback] = None
    ) -> "Future[Optional[Path]]":
        """Resolve a category directory, creating it if needed.

        Args:
            kind: FileCategory or Filer
            callback: Receives the directory path, or None on failure

        Returns:
            Future resolving to the same value the callback receives
        """
        category, _ = self._category_and_extension(kind)
        operation = Operation(OperationKind.RESOLVE_PATH, category.value)

        def pipeline(op: Operation) -> Path:
            op.advance(OperationState.RESOLVING)
            return self.resolver.resolve_directory(category)

        return self._dispatch(operation, pipeline, callback)

    def allocate_unique_path(
        self,
        kind: FileKind,
        name: Optional[str] = None,
        callback: Optional[PathCallback] = None,
    ) -> "Future[Optional[Path]]":
        """Allocate a path that does not collide with an existing file.

        The path is claimed with an empty placeholder file, so concurrent
        allocations never hand out the same name. Fill it with
        ``save(..., overwrite=True)`` or remove it with ``delete``.

        Args:
            kind: FileCategory or Filer
            name: Optional file name to disambiguate. A random name with the
                kind's extension is generated when omitted
            callback: Receives the allocated path, or None on failure

        Raises:
            InvalidArgumentError: If name is malformed
        """
        category, extension = self._category_and_extension(kind)
        if name is not None:
            name = validate_file_name(name)
        elif not extension:
            raise InvalidArgumentError(f"No file extension for {category.value}")
        operation = Operation(OperationKind.ALLOCATE, name or category.value)

        def pipeline(op: Operation) -> Path:
            op.advance(OperationState.RESOLVING)
            directory = self.resolver.resolve_directory(category)
            op.advance(OperationState.ALLOCATING)
            for _ in range(self.config.max_allocation_attempts):
                if name is None:
                    target = self.allocator.allocate(kind, reserve=True)
                else:
                    target = self.allocator.allocate_named(kind, name, reserve=True)
                try:
                    self._claim(target)
                    return target
                except FileExistsError:
                    logger.debug(f"Lost race for {target}, allocating again")
                finally:
                    self.allocator.release(target)

            raise AllocationExhaustedError(
                f"Could not claim a unique file in {directory} after "
                f"{self.config.max_allocation_attempts} attempts"
            )

        return self._dispatch(operation, pipeline, callback)

    def save(
        self,
        data: bytes,
        kind: FileKind,
        name: Optional[str] = None,
        overwrite: bool = False,
        unique: bool = False,
        callback: Optional[PathCallback] = None,
    ) -> "Future[Optional[Path]]":
        """Write bytes into a category directory.

        The file is written to a hidden temporary file next to the target
        and published atomically, so a partially written file is never
        visible at the final path.

        Args:
            data: Non-empty payload
            kind: FileCategory or Filer
            name: File name including extension. A random unique name is
                generated when omitted
            overwrite: Replace an existing file with the same name. When
                False, saving onto an existing name fails without writing
            unique: Disambiguate ``name`` on collision (``pic1.png``)
                instead of failing
            callback: Receives the final path, or None on failure

        Raises:
            InvalidArgumentError: If data is empty, name is malformed, or
                both overwrite and unique are requested
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError(
                f"Data must be bytes-like, got {type(data).__name__}"
            )
        payload = bytes(data)
        if not payload:
            raise InvalidArgumentError("Data should not be empty")
        if overwrite and unique:
            raise InvalidArgumentError("overwrite and unique cannot both be set")
        category, extension = self._category_and_extension(kind)
        if name is not None:
            name = validate_file_name(name)
        elif not extension:
            raise InvalidArgumentError(f"No file extension for {category.value}")
        operation = Operation(OperationKind.SAVE, name or category.value)

        def pipeline(op: Operation) -> Path:
            return self._save_sync(op, payload, kind, name, overwrite, unique)

        return self._dispatch(operation, pipeline, callback)

    def move(
        self,
        source: PathLike,
        kind: FileKind,
        callback: Optional[PathCallback] = None,
    ) -> "Future[Optional[Path]]":
        """Move a file into a category directory.

        The source is read, saved into the destination under its own name
        (disambiguated on collision) and only deleted once the new copy is
        in place. A failed write leaves the source untouched.

        Args:
            source: Path of the file to move
            kind: Destination FileCategory or Filer
            callback: Receives the destination path, or None on failure

        Raises:
            InvalidArgumentError: If source is empty or its name is malformed
        """
        source_path = self._as_path(source, "Origin path")
        category, _ = self._category_and_extension(kind)
        name = validate_file_name(source_path.name)
        operation = Operation(OperationKind.MOVE, f"{source_path} -> {category.value}")

        def pipeline(op: Operation) -> Path:
            op.advance(OperationState.RESOLVING)
            if not source_path.is_file():
                raise NotFoundError(f"Source file does not exist: {source_path}")

            op.advance(OperationState.PERFORMING)
            data = self._read_bytes(source_path)
            destination = self._save_sync(
                op, data, kind, name, overwrite=False, unique=True
            )

            try:
                self._remove(source_path)
            except DeleteError:
                # Keep a single copy: roll the destination back
                try:
                    destination.unlink()
                except OSError as e:
                    logger.error(f"Failed to roll back moved copy {destination}: {e}")
                raise
            return destination

        return self._dispatch(operation, pipeline, callback)

    def delete(
        self, path: PathLike, callback: Optional[PathCallback] = None
    ) -> "Future[Optional[Path]]":
        """Delete a file, or a directory with everything below it.

        Args:
            path: Path to remove
            callback: Receives the removed path, or None on failure
                (including when nothing existed at path)

        Raises:
            InvalidArgumentError: If path is empty
        """
        target = self._as_path(path, "Path")
        operation = Operation(OperationKind.DELETE, str(target))

        def pipeline(op: Operation) -> Path:
            op.advance(OperationState.RESOLVING)
            if not os.path.lexists(target):
                raise NotFoundError(f"Nothing to delete at {target}")
            op.advance(OperationState.PERFORMING)
            self._remove(target)
            return target

        return self._dispatch(operation, pipeline, callback)

    def delete_category(
        self, kind: FileKind, callback: Optional[PathCallback] = None
    ) -> "Future[Optional[Path]]":
        """Delete a category directory and all files in it.

        The directory is not created just to be deleted: when it does not
        exist the completion receives None. The next operation on the
        category recreates it.

        Args:
            kind: FileCategory or Filer
            callback: Receives the removed directory, or None
        """
        category, _ = self._category_and_extension(kind)
        operation = Operation(OperationKind.DELETE_CATEGORY, category.value)

        def pipeline(op: Operation) -> Optional[Path]:
            op.advance(OperationState.RESOLVING)
            directory = self.resolver.directory_for(category)
            if not os.path.lexists(directory):
                logger.debug(f"Nothing to delete for {category.value}")
                return None
            op.advance(OperationState.PERFORMING)
            self._remove(directory)
            return directory

        return self._dispatch(operation, pipeline, callback)

    def delete_temp_files(
        self, callback: Optional[PathCallback] = None
    ) -> "Future[Optional[Path]]":
        """Delete every file in the TEMP category."""
        return self.delete_category(FileCategory.TEMP, callback=callback)

    def read(
        self, path: PathLike, callback: Optional[BytesCallback] = None
    ) -> "Future[Optional[bytes]]":
        """Read a file's contents.

        Args:
            path: File to read
            callback: Receives the contents, or None on failure
        """
        source = self._as_path(path, "Path")
        operation = Operation(OperationKind.READ, str(source))

        def pipeline(op: Operation) -> bytes:
            op.advance(OperationState.RESOLVING)
            if not source.is_file():
                raise NotFoundError(f"File does not exist: {source}")
            op.advance(OperationState.PERFORMING)
            return self._read_bytes(source)

        return self._dispatch(operation, pipeline, callback)

    def category_info(self, kind: FileKind) -> CategoryInfo:
        """Describe a category directory without creating it.

        Args:
            kind: FileCategory or Filer

        Returns:
            CategoryInfo with location, file count and size
        """
        category, _ = self._category_and_extension(kind)
        directory = self.resolver.directory_for(category)
        file_count = 0
        total_bytes = 0
        if directory.is_dir():
            for path in directory.rglob("*"):
                if path.name.startswith(".") or path.name == CACHEDIR_TAG:
                    continue
                if path.is_file():
                    file_count += 1
                    total_bytes += path.stat().st_size

        return {
            "category": category.value,
            "path": str(directory),
            "root_area": category.root_area.value,
            "exists": directory.is_dir(),
            "file_count": file_count,
            "total_bytes": total_bytes,
            "excluded_from_backup": category.excluded_from_backup,
        }

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _dispatch(
        self,
        operation: Operation,
        pipeline: Callable[[Operation], Any],
        callback: Optional[Callable[[Any], None]],
    ) -> Future:
        """Run a pipeline in the background and deliver on the result context."""
        if self._closed:
            raise RuntimeError("FileStore is closed")

        token = self.guard.begin()
        future: Future = Future()
        with self._idle:
            self._pending += 1
        try:
            self._executor.submit(self._run, operation, pipeline, callback, token, future)
        except RuntimeError:
            self._operation_done()
            self.guard.end(token)
            raise
        return future

    def _run(self, operation, pipeline, callback, token, future) -> None:
        try:
            result = pipeline(operation)
        except FilerError as e:
            logger.error(f"{operation} failed: {e}")
            operation.complete(False, str(e))
            result = None
        except OSError as e:
            logger.error(f"File error in {operation}: {e}")
            operation.complete(False, str(e))
            result = None
        except Exception as e:
            logger.exception(f"Unexpected error in {operation}")
            operation.complete(False, str(e))
            result = None
        else:
            operation.complete(result is not None)

        try:
            self._result_executor.submit(
                self._deliver, operation, result, callback, token, future
            )
        except RuntimeError as e:
            logger.error(f"Result context unavailable for {operation}: {e}")
            self._deliver(operation, result, callback, token, future)

    def _deliver(self, operation, result, callback, token, future) -> None:
        try:
            if callback is not None:
                callback(result)
        except Exception:
            logger.exception(f"Completion callback for {operation} raised")

        try:
            self.guard.end(token)
        except Exception as e:
            logger.error(f"Background work guard failed to end {operation}: {e}")

        try:
            future.set_result(result)
        finally:
            self._operation_done()

    def _operation_done(self) -> None:
        with self._idle:
            self._pending -= 1
            if self._pending == 0:
                self._idle.notify_all()

    # =========================================================================
    # Pipeline steps
    # =========================================================================

    def _save_sync(
        self,
        op: Operation,
        data: bytes,
        kind: FileKind,
        name: Optional[str],
        overwrite: bool,
        unique: bool,
    ) -> Path:
        """Resolve, allocate if needed, and publish ``data``. Returns the path."""
        category, _ = category_and_extension(kind)
        op.reach(OperationState.RESOLVING)
        directory = self.resolver.resolve_directory(category)

        if name is not None and not unique:
            target = directory / name
            op.reach(OperationState.PERFORMING)
            if not overwrite and os.path.lexists(target):
                raise WriteError(f"File already exists: {target}")
            try:
                self._write_atomic(data, target, overwrite)
            except FileExistsError as e:
                raise WriteError(f"File already exists: {target}") from e
            return target

        # Allocated names: the exclusive publish decides, re-allocate on conflict
        op.reach(OperationState.ALLOCATING)
        for _ in range(self.config.max_allocation_attempts):
            if name is None:
                target = self.allocator.allocate(kind, reserve=True)
            else:
                target = self.allocator.allocate_named(kind, name, reserve=True)
            op.reach(OperationState.PERFORMING)
            try:
                self._write_atomic(data, target, overwrite=False)
                return target
            except FileExistsError:
                logger.debug(f"Lost race for {target}, allocating again")
            finally:
                self.allocator.release(target)

        raise AllocationExhaustedError(
            f"Could not publish a unique file in {directory} after "
            f"{self.config.max_allocation_attempts} attempts"
        )

    def _write_atomic(self, data: bytes, target: Path, overwrite: bool) -> None:
        """Write to a temp file and publish it at ``target``.

        Raises:
            FileExistsError: If not overwriting and target already exists
            WriteError: On any other failure
        """
        temp_path = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            try:
                with open(temp_path, "xb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                logger.error(f"File save error writing {temp_path}: {e}")
                raise WriteError(f"Cannot write {target.name}: {e}") from e

            try:
                if overwrite:
                    os.replace(temp_path, target)
                else:
                    # Hard link creation fails if the target exists
                    os.link(temp_path, target)
            except FileExistsError:
                raise
            except OSError as e:
                logger.error(f"File save error publishing {target}: {e}")
                raise WriteError(f"Cannot finalize {target.name}: {e}") from e
        finally:
            if os.path.lexists(temp_path):
                try:
                    temp_path.unlink()
                except OSError as e:
                    logger.warning(f"Failed to clean up temp file {temp_path}: {e}")

    def _claim(self, target: Path) -> None:
        """Create an empty placeholder at ``target``.

        Raises:
            FileExistsError: If target already exists
            WriteError: On any other failure
        """
        try:
            with open(target, "xb"):
                pass
        except FileExistsError:
            raise
        except OSError as e:
            logger.error(f"File save error claiming {target}: {e}")
            raise WriteError(f"Cannot claim {target.name}: {e}") from e

    def _read_bytes(self, path: Path) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.error(f"File read error for {path}: {e}")
            raise ReadError(f"Cannot read {path}: {e}") from e

    def _remove(self, path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            logger.error(f"File deletion error for {path}: {e}")
            raise DeleteError(f"Cannot delete {path}: {e}") from e

    # =========================================================================
    # Argument helpers
    # =========================================================================

    @staticmethod
    def _category_and_extension(kind: FileKind) -> Tuple[FileCategory, str]:
        try:
            return category_and_extension(kind)
        except TypeError as e:
            raise InvalidArgumentError(str(e)) from e

    @staticmethod
    def _as_path(value: PathLike, label: str) -> Path:
        if value is None or not os.fspath(value):
            raise InvalidArgumentError(f"{label} should not be empty")
        return Path(value)
