"""Main CLI entry point for filer.

Provides command-line access to the categorized file store: resolving
category paths, saving, moving and deleting files, and purging categories.
"""

import logging
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click
import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from filer import FileStore, StoreConfig
from filer.storage.categories import FileCategory, get_file_category

# Global console for Rich output
console = Console()

CATEGORY_CHOICE = click.Choice([c.value for c in FileCategory], case_sensitive=False)


def configure_logging(verbose: bool) -> None:
    """Send filer log records to stderr through Rich."""
    package_logger = logging.getLogger("filer")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False)
    )
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def build_config(
    config_path: Optional[str] = None,
    product: Optional[str] = None,
    caches_dir: Optional[str] = None,
    documents_dir: Optional[str] = None,
    temp_dir: Optional[str] = None,
) -> StoreConfig:
    """Build the store configuration from multiple sources.

    Priority:
    1. Explicit command-line options
    2. Config file from --config or the FILER_CONFIG environment variable
    3. FILER_* environment variables and platform defaults

    Raises:
        click.ClickException: If the config file does not exist or is invalid
    """
    config_path = config_path or os.environ.get("FILER_CONFIG")
    try:
        if config_path:
            if not Path(config_path).exists():
                raise click.ClickException(f"Config file not found: {config_path}")
            base = StoreConfig.load(Path(config_path))
        else:
            base = StoreConfig.from_env()

        overrides = {
            key: value
            for key, value in {
                "product_name": product,
                "caches_dir": caches_dir,
                "documents_dir": documents_dir,
                "temp_dir": temp_dir,
            }.items()
            if value is not None
        }
        if not overrides:
            return base

        # Default lock dir follows the caches area and product
        keep_lock_dir = not ({"caches_dir", "product_name"} & overrides.keys())
        data = {
            "product_name": base.product_name,
            "caches_dir": base.caches_dir,
            "documents_dir": base.documents_dir,
            "temp_dir": base.temp_dir,
            "lock_dir": base.lock_dir if keep_lock_dir else None,
            "max_workers": base.max_workers,
            "max_allocation_attempts": base.max_allocation_attempts,
            "lock_timeout": base.lock_timeout,
        }
        data.update(overrides)
        return StoreConfig(**data)
    except (ValueError, TypeError, orjson.JSONDecodeError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")


@contextmanager
def open_store(ctx: click.Context) -> Iterator[FileStore]:
    store = FileStore(ctx.obj["config"])
    try:
        yield store
    finally:
        store.close()


def fail(message: str) -> None:
    console.print(f"[red]✗[/red] Error: {message}", style="red")
    sys.exit(1)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to a JSON config file (default: FILER_CONFIG env var)",
)
@click.option("--product", help="Product directory name (default: Filer)")
@click.option("--caches-dir", type=click.Path(file_okay=False), help="Caches area root")
@click.option(
    "--documents-dir", type=click.Path(file_okay=False), help="Documents area root"
)
@click.option("--temp-dir", type=click.Path(file_okay=False), help="Temporary area root")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, config_path, product, caches_dir, documents_dir, temp_dir, verbose):
    """filer CLI - Manage categorized file storage.

    Use --config to point at a config file, or set FILER_* environment variables.
    """
    ctx.ensure_object(dict)
    configure_logging(verbose)
    ctx.obj["config"] = build_config(
        config_path, product, caches_dir, documents_dir, temp_dir
    )


@cli.command("path")
@click.argument("category", type=CATEGORY_CHOICE)
@click.argument("name", required=False)
@click.pass_context
def path_command(ctx, category, name):
    """Print a category directory, or claim a free path for NAME in it.

    Example:
        filer path thumbnail
        filer path thumbnail pic.png
    """
    try:
        kind = get_file_category(category)
        with open_store(ctx) as store:
            if name is None:
                result = store.resolve_path(kind).result()
            else:
                result = store.allocate_unique_path(kind, name).result()
    except Exception as e:
        fail(str(e))
        return

    if result is None:
        fail(f"Could not resolve a path for {category}")
    click.echo(str(result))


@cli.command("save")
@click.argument("category", type=CATEGORY_CHOICE)
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", "-n", help="Stored file name (default: random)")
@click.option("--overwrite", is_flag=True, help="Replace an existing file")
@click.option("--unique", is_flag=True, help="Rename on collision instead of failing")
@click.pass_context
def save_command(ctx, category, file, name, overwrite, unique):
    """Copy FILE into CATEGORY.

    Example:
        filer save thumbnail ./pic.png --name pic.png
        filer save audio ./take.m4a --name take.m4a --unique
    """
    try:
        data = Path(file).read_bytes()
        with open_store(ctx) as store:
            result = store.save(
                data,
                get_file_category(category),
                name=name,
                overwrite=overwrite,
                unique=unique,
            ).result()
    except Exception as e:
        fail(str(e))
        return

    if result is None:
        fail(f"Could not save {file}")
    console.print(f"[green]✓[/green] Saved {result}")


@cli.command("move")
@click.argument("source", type=click.Path())
@click.argument("category", type=CATEGORY_CHOICE)
@click.pass_context
def move_command(ctx, source, category):
    """Move SOURCE into CATEGORY.

    Example:
        filer move ./recording.m4a audio
    """
    try:
        with open_store(ctx) as store:
            result = store.move(source, get_file_category(category)).result()
    except Exception as e:
        fail(str(e))
        return

    if result is None:
        fail(f"Could not move {source}")
    console.print(f"[green]✓[/green] Moved to {result}")


@cli.command("delete")
@click.argument("path", type=click.Path())
@click.pass_context
def delete_command(ctx, path):
    """Delete a stored file.

    Example:
        filer delete ~/.cache/Filer/Thumbs/pic.png
    """
    try:
        with open_store(ctx) as store:
            result = store.delete(path).result()
    except Exception as e:
        fail(str(e))
        return

    if result is None:
        fail(f"Could not delete {path}")
    console.print(f"[green]✓[/green] Deleted {result}")


@cli.command("purge")
@click.argument("category", type=CATEGORY_CHOICE)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def purge_command(ctx, category, yes):
    """Delete every file in CATEGORY.

    Example:
        filer purge video --yes
    """
    if not yes:
        click.confirm(f"Delete all {category} files?", abort=True)
    try:
        with open_store(ctx) as store:
            result = store.delete_category(get_file_category(category)).result()
    except Exception as e:
        fail(str(e))
        return

    if result is None:
        console.print(f"[yellow]Nothing to delete for {category}[/yellow]")
        return
    console.print(f"[green]✓[/green] Purged {result}")


@cli.command("clean-temp")
@click.pass_context
def clean_temp_command(ctx):
    """Delete all temporary files."""
    try:
        with open_store(ctx) as store:
            result = store.delete_temp_files().result()
    except Exception as e:
        fail(str(e))
        return

    if result is None:
        console.print("[yellow]No temporary files[/yellow]")
        return
    console.print(f"[green]✓[/green] Removed {result}")


def format_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024


@cli.command("info")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def info_command(ctx, as_json):
    """Show where each category lives and how much it holds.

    Example:
        filer info
        filer info --json
    """
    try:
        with open_store(ctx) as store:
            infos = [store.category_info(category) for category in FileCategory]
    except Exception as e:
        fail(str(e))
        return

    if as_json:
        click.echo(orjson.dumps(infos, option=orjson.OPT_INDENT_2).decode())
        return

    table = Table(title=f"Categories ({ctx.obj['config'].product_name})")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Area", style="blue")
    table.add_column("Path", style="white")
    table.add_column("Files", justify="right", style="green")
    table.add_column("Size", justify="right", style="green")
    table.add_column("Backup", style="magenta")

    for info in infos:
        table.add_row(
            info["category"],
            info["root_area"],
            info["path"] if info["exists"] else f"[dim]{info['path']}[/dim]",
            str(info["file_count"]),
            format_size(info["total_bytes"]),
            "excluded" if info["excluded_from_backup"] else "included",
        )

    console.print(table)


if __name__ == "__main__":
    cli()
