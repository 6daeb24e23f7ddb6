"""Tests for category directory resolution."""

import shutil
from unittest.mock import patch

import pytest

from filer.config import StoreConfig
from filer.errors import DirectoryCreateError
from filer.storage.backup import CACHEDIR_TAG
from filer.storage.categories import FileCategory
from filer.storage.resolver import CategoryResolver


@pytest.fixture
def config(tmp_path):
    """Create a config with every root area under tmp_path."""
    return StoreConfig(
        caches_dir=tmp_path / "caches",
        documents_dir=tmp_path / "documents",
        temp_dir=tmp_path / "tmp",
    )


@pytest.fixture
def resolver(config):
    return CategoryResolver(config)


class TestDirectoryLayout:
    """Tests for pure path derivation."""

    def test_cache_categories(self, resolver, tmp_path):
        assert (
            resolver.directory_for(FileCategory.THUMBNAIL)
            == tmp_path / "caches" / "Filer" / "Thumbs"
        )
        assert (
            resolver.directory_for(FileCategory.FULL_IMAGE)
            == tmp_path / "caches" / "Filer" / "Images"
        )
        assert (
            resolver.directory_for(FileCategory.AUDIO)
            == tmp_path / "caches" / "Filer" / "Audio"
        )
        assert (
            resolver.directory_for(FileCategory.VIDEO)
            == tmp_path / "caches" / "Filer" / "Video"
        )

    def test_database_in_documents(self, resolver, tmp_path):
        assert (
            resolver.directory_for(FileCategory.DATABASE)
            == tmp_path / "documents" / "Filer" / "Database"
        )

    def test_temp_uses_product_root(self, resolver, tmp_path):
        assert resolver.directory_for(FileCategory.TEMP) == tmp_path / "tmp" / "Filer"

    def test_custom_product_name(self, tmp_path):
        resolver = CategoryResolver(
            StoreConfig(caches_dir=tmp_path, product_name="Gallery")
        )
        assert (
            resolver.directory_for(FileCategory.VIDEO) == tmp_path / "Gallery" / "Video"
        )

    def test_directory_for_has_no_side_effect(self, resolver):
        path = resolver.directory_for(FileCategory.AUDIO)
        assert not path.exists()


class TestEnsureDirectory:
    """Tests for lazy directory creation."""

    @pytest.mark.parametrize("category", list(FileCategory))
    def test_resolve_is_idempotent(self, resolver, category):
        """Test that the second resolution returns the same path and creates nothing."""
        first, created_first = resolver.ensure_directory(category)
        second, created_second = resolver.ensure_directory(category)

        assert first == second
        assert first.is_dir()
        assert created_first is True
        assert created_second is False

    def test_backup_exclusion_applied_once(self, resolver):
        with patch("filer.storage.resolver.exclude_from_backup") as exclude:
            resolver.resolve_directory(FileCategory.THUMBNAIL)
            resolver.resolve_directory(FileCategory.THUMBNAIL)

        exclude.assert_called_once_with(resolver.directory_for(FileCategory.THUMBNAIL))

    def test_database_not_excluded(self, resolver):
        directory = resolver.resolve_directory(FileCategory.DATABASE)
        assert not (directory / CACHEDIR_TAG).exists()

    def test_media_directory_tagged(self, resolver):
        directory = resolver.resolve_directory(FileCategory.VIDEO)
        assert (directory / CACHEDIR_TAG).exists()

    def test_existing_directory_not_tagged(self, resolver):
        """Test that a pre-existing directory is left alone."""
        directory = resolver.directory_for(FileCategory.AUDIO)
        directory.mkdir(parents=True)

        assert resolver.resolve_directory(FileCategory.AUDIO) == directory
        assert not (directory / CACHEDIR_TAG).exists()

    def test_lock_dir_created_with_first_directory(self, resolver):
        lock_dir = resolver.config.lock_dir
        assert not lock_dir.exists()

        resolver.resolve_directory(FileCategory.DATABASE)

        assert lock_dir.is_dir()

    def test_existing_directory_skips_lock_dir(self, resolver):
        resolver.directory_for(FileCategory.DATABASE).mkdir(parents=True)

        resolver.resolve_directory(FileCategory.DATABASE)

        assert not resolver.config.lock_dir.exists()

    def test_recreated_after_removal(self, resolver):
        directory = resolver.resolve_directory(FileCategory.TEMP)
        shutil.rmtree(directory)

        path, created = resolver.ensure_directory(FileCategory.TEMP)
        assert path == directory
        assert created is True
        assert path.is_dir()

    def test_file_in_the_way(self, resolver):
        directory = resolver.directory_for(FileCategory.AUDIO)
        directory.parent.mkdir(parents=True)
        directory.write_bytes(b"not a directory")

        with pytest.raises(DirectoryCreateError):
            resolver.resolve_directory(FileCategory.AUDIO)

    def test_creation_failure(self, resolver):
        with patch("pathlib.Path.mkdir", side_effect=PermissionError("denied")):
            with pytest.raises(DirectoryCreateError):
                resolver.resolve_directory(FileCategory.VIDEO)
