"""
Command-line interface for Inventory operations.

Provides commands for initializing the schema, running the API server,
importing CSV data and checking database status.
"""

import sys
from pathlib import Path

import click
from loguru import logger

from inventory_api.db_client import InventoryDB
from inventory_api.errors import DatabaseError
from .config import get_settings
from .importer import import_products, import_stock, ImportSummary


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[command]}</magenta> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {process} | {extra[command]} | {name}:{function}:{line} - {message}"


def setup_logging(command: str = "inventory") -> None:
    """
    Send loguru output to stderr and the inventory log file.

    Every record is tagged with the CLI command that produced it, so
    ``serve`` output and import runs can be told apart in a shared log file.
    """
    settings = get_settings()

    logger.remove()
    logger.configure(extra={"command": command})

    logger.add(sys.stderr, level=settings.log_level, format=CONSOLE_FORMAT)

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention=10,
            compression="zip",
            format=FILE_FORMAT
        )


def _connect() -> InventoryDB:
    """Build the database client or exit when DATABASE_URL is missing or unusable."""
    try:
        return InventoryDB()
    except DatabaseError as e:
        logger.error(e.message)
        sys.exit(1)


def _echo_summary(title: str, summary: ImportSummary) -> None:
    click.echo(f"\n{title}")
    click.echo("=" * 50)
    click.echo(f"Rows Read:       {summary.rows_read:,}")
    click.echo(f"Imported:        {summary.imported:,}")
    click.echo(f"Skipped:         {summary.skipped:,}")
    click.echo(f"Invalid:         {summary.invalid:,}")


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Inventory Service Command Line Interface."""
    if verbose:
        # Override log level for verbose mode
        settings = get_settings()
        settings.log_level = "DEBUG"

    setup_logging(ctx.invoked_subcommand or "inventory")
    logger.debug("Inventory CLI started")


@main.command('init-db')
def init_db() -> None:
    """Create the products, stock and employees tables if missing."""
    db = _connect()
    try:
        created = db.init_schema()
        if created:
            click.echo(f"Created tables: {', '.join(created)}")
        else:
            click.echo("Schema already up to date")

    except Exception as e:
        logger.error(f"Schema initialization failed: {e}")
        sys.exit(1)
    finally:
        db.dispose()


@main.command()
@click.option('--host', default=None, help='Bind address (default: API_HOST)')
@click.option('--port', default=None, type=int, help='Port (default: API_PORT)')
@click.option('--reload', is_flag=True, help='Reload on code changes')
def serve(host, port, reload: bool) -> None:
    """Run the REST API with uvicorn."""
    import uvicorn

    settings = get_settings()
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; the API will start but database requests will fail")

    uvicorn.run(
        "inventory_api.fastapi_server:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        workers=1 if reload else settings.api_workers,
        reload=reload
    )


@main.command('import-products')
@click.argument('csv_path', type=click.Path(exists=True, path_type=Path))
def import_products_command(csv_path: Path) -> None:
    """
    Import products from a CSV file.

    CSV_PATH: CSV with id_produk (or code/sku), nama_produk (or name) and
    optional kategori_produk (or category) columns
    """
    db = _connect()
    try:
        summary = import_products(db, csv_path)
        _echo_summary(f"Product Import - {csv_path.name}", summary)

    except Exception as e:
        logger.error(f"Product import failed: {e}")
        sys.exit(1)
    finally:
        db.dispose()


@main.command('import-stock')
@click.argument('csv_path', type=click.Path(exists=True, path_type=Path))
def import_stock_command(csv_path: Path) -> None:
    """
    Add stock quantities from a CSV file.

    CSV_PATH: CSV with id_produk (or code/sku) and jumlah_stok (or quantity/qty)
    columns. Quantities are added to existing stock.
    """
    db = _connect()
    try:
        summary = import_stock(db, csv_path)
        _echo_summary(f"Stock Import - {csv_path.name}", summary)

    except Exception as e:
        logger.error(f"Stock import failed: {e}")
        sys.exit(1)
    finally:
        db.dispose()


@main.command()
def status() -> None:
    """Show database status and dashboard totals."""
    db = _connect()
    try:
        health = db.health_check()

        click.echo("\nInventory Status")
        click.echo("=" * 50)

        if not health['database_connected']:
            click.echo(f"Error: {health['error']}")
            sys.exit(1)

        summary = db.dashboard_summary()
        click.echo(f"Products:        {summary['total_produk']:,}")
        click.echo(f"Stock Rows:      {health['stock_row_count']:,}")
        click.echo(f"Stock Units:     {summary['total_stok_unit']:,}")
        click.echo(f"Employees:       {summary['total_karyawan']:,}")

    except Exception as e:
        logger.error(f"Status check failed: {e}")
        sys.exit(1)
    finally:
        db.dispose()


if __name__ == '__main__':
    main()
