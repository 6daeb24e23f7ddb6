"""Tests for the filer CLI.

These tests verify:
- Every command works against a store rooted in tmp_path
- Error handling and exit codes
- Output formatting
"""

import orjson
import pytest
from click.testing import CliRunner

from filer.cli.main import cli
from filer.config import StoreConfig


@pytest.fixture
def roots(tmp_path):
    return [
        "--caches-dir",
        str(tmp_path / "caches"),
        "--documents-dir",
        str(tmp_path / "documents"),
        "--temp-dir",
        str(tmp_path / "tmp"),
    ]


@pytest.fixture
def runner():
    return CliRunner()


class TestPathCommand:
    """Test the path command."""

    def test_category_directory(self, runner, roots, tmp_path):
        result = runner.invoke(cli, [*roots, "path", "thumbnail"])

        assert result.exit_code == 0
        expected = tmp_path / "caches" / "Filer" / "Thumbs"
        assert str(expected) in result.output
        assert expected.is_dir()

    def test_named_path(self, runner, roots, tmp_path):
        result = runner.invoke(cli, [*roots, "path", "database", "app.sqlite"])

        assert result.exit_code == 0
        assert "app.sqlite" in result.output

    def test_bad_name(self, runner, roots):
        result = runner.invoke(cli, [*roots, "path", "audio", "noext"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_unknown_category(self, runner, roots):
        result = runner.invoke(cli, [*roots, "path", "spreadsheet"])
        assert result.exit_code != 0


class TestSaveCommand:
    """Test the save command."""

    def test_save_named(self, runner, roots, tmp_path):
        source = tmp_path / "input.png"
        source.write_bytes(b"AB")

        result = runner.invoke(
            cli, [*roots, "save", "thumbnail", str(source), "--name", "pic.png"]
        )

        assert result.exit_code == 0
        assert "Saved" in result.output
        stored = tmp_path / "caches" / "Filer" / "Thumbs" / "pic.png"
        assert stored.read_bytes() == b"AB"

    def test_save_duplicate_fails(self, runner, roots, tmp_path):
        source = tmp_path / "input.png"
        source.write_bytes(b"AB")
        args = [*roots, "save", "thumbnail", str(source), "--name", "pic.png"]

        runner.invoke(cli, args)
        result = runner.invoke(cli, args)

        assert result.exit_code == 1

    def test_save_unique(self, runner, roots, tmp_path):
        source = tmp_path / "input.png"
        source.write_bytes(b"AB")
        args = [*roots, "save", "thumbnail", str(source), "--name", "pic.png"]

        runner.invoke(cli, args)
        result = runner.invoke(cli, [*args, "--unique"])

        assert result.exit_code == 0
        assert (tmp_path / "caches" / "Filer" / "Thumbs" / "pic1.png").exists()

    def test_save_empty_file_fails(self, runner, roots, tmp_path):
        source = tmp_path / "empty.bin"
        source.write_bytes(b"")

        result = runner.invoke(cli, [*roots, "save", "temp", str(source)])

        assert result.exit_code == 1
        assert "empty" in result.output


class TestMoveAndDelete:
    """Test the move, delete, purge and clean-temp commands."""

    def test_move(self, runner, roots, tmp_path):
        source = tmp_path / "take.m4a"
        source.write_bytes(b"audio")

        result = runner.invoke(cli, [*roots, "move", str(source), "audio"])

        assert result.exit_code == 0
        assert not source.exists()
        assert (tmp_path / "caches" / "Filer" / "Audio" / "take.m4a").exists()

    def test_move_missing(self, runner, roots, tmp_path):
        result = runner.invoke(cli, [*roots, "move", str(tmp_path / "no.m4a"), "audio"])
        assert result.exit_code == 1

    def test_delete(self, runner, roots, tmp_path):
        target = tmp_path / "old.txt"
        target.write_text("bye")

        result = runner.invoke(cli, [*roots, "delete", str(target)])

        assert result.exit_code == 0
        assert not target.exists()

    def test_delete_missing(self, runner, roots, tmp_path):
        result = runner.invoke(cli, [*roots, "delete", str(tmp_path / "missing.txt")])
        assert result.exit_code == 1

    def test_purge(self, runner, roots, tmp_path):
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"video")
        runner.invoke(cli, [*roots, "save", "video", str(source), "--name", "clip.mp4"])

        result = runner.invoke(cli, [*roots, "purge", "video", "--yes"])

        assert result.exit_code == 0
        assert not (tmp_path / "caches" / "Filer" / "Video").exists()

    def test_purge_requires_confirmation(self, runner, roots, tmp_path):
        runner.invoke(cli, [*roots, "path", "video"])

        result = runner.invoke(cli, [*roots, "purge", "video"], input="n\n")

        assert result.exit_code != 0
        assert (tmp_path / "caches" / "Filer" / "Video").exists()

    def test_purge_nothing(self, runner, roots):
        result = runner.invoke(cli, [*roots, "purge", "audio", "--yes"])

        assert result.exit_code == 0
        assert "Nothing to delete" in result.output

    def test_clean_temp(self, runner, roots, tmp_path):
        source = tmp_path / "scratch.tmp"
        source.write_bytes(b"x")
        runner.invoke(cli, [*roots, "save", "temp", str(source)])

        result = runner.invoke(cli, [*roots, "clean-temp"])

        assert result.exit_code == 0
        assert not (tmp_path / "tmp" / "Filer").exists()


class TestInfoCommand:
    """Test the info command."""

    def test_info_table(self, runner, roots):
        result = runner.invoke(cli, [*roots, "info"])

        assert result.exit_code == 0
        assert "thumbnail" in result.output
        assert "database" in result.output

    def test_info_json(self, runner, roots, tmp_path):
        source = tmp_path / "a.m4a"
        source.write_bytes(b"1234")
        runner.invoke(cli, [*roots, "save", "audio", str(source), "--name", "a.m4a"])

        result = runner.invoke(cli, [*roots, "info", "--json"])

        assert result.exit_code == 0
        infos = {info["category"]: info for info in orjson.loads(result.output)}
        assert infos["audio"]["file_count"] == 1
        assert infos["audio"]["total_bytes"] == 4
        assert infos["database"]["excluded_from_backup"] is False


class TestConfigOptions:
    """Test configuration sources."""

    def test_config_file(self, runner, tmp_path):
        config_path = tmp_path / "filer.json"
        StoreConfig(
            product_name="Gallery",
            caches_dir=tmp_path / "caches",
            documents_dir=tmp_path / "documents",
            temp_dir=tmp_path / "tmp",
        ).save(config_path)

        result = runner.invoke(cli, ["--config", str(config_path), "path", "video"])

        assert result.exit_code == 0
        assert (tmp_path / "caches" / "Gallery" / "Video").is_dir()

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "nope.json"), "info"])

        assert result.exit_code != 0
        assert "Config file not found" in result.output

    def test_product_override(self, runner, roots, tmp_path):
        result = runner.invoke(cli, [*roots, "--product", "Gallery", "path", "audio"])

        assert result.exit_code == 0
        assert (tmp_path / "caches" / "Gallery" / "Audio").is_dir()
