"""
Bulk import of products and stock from CSV files.

Rows are read with pandas, column names are standardized, rows missing
required fields are dropped, and every remaining row goes through the same
`InventoryDB` operations the API uses.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from loguru import logger

from inventory_api.db_client import InventoryDB
from inventory_api.errors import ConflictError, NotFoundError

# Target column -> accepted CSV header names (lower case)
COLUMN_MAP: Dict[str, List[str]] = {
    "id_produk": ["id_produk", "code", "product_code", "sku"],
    "nama_produk": ["nama_produk", "name", "product_name"],
    "kategori_produk": ["kategori_produk", "category"],
    "jumlah_stok": ["jumlah_stok", "quantity", "qty", "stock"],
}

INT4_MAX = 2**31 - 1


@dataclass
class ImportSummary:
    """Outcome of one CSV import."""
    rows_read: int = 0
    imported: int = 0
    skipped: int = 0
    invalid: int = 0


def read_inventory_csv(csv_path: Path, columns: List[str]) -> pd.DataFrame:
    """
    Read a CSV file and map its headers onto inventory column names.

    Args:
        csv_path: Path to the CSV file
        columns: Target columns to extract (keys of COLUMN_MAP)

    Returns:
        pd.DataFrame: One column per target, blank cells as NaN

    Raises:
        FileNotFoundError: If the CSV file doesn't exist
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    df = pd.read_csv(csv_path, dtype=str)
    df.columns = [str(col).strip().lower() for col in df.columns]
    logger.debug(f"CSV header: {df.columns.tolist()}")

    standardized = pd.DataFrame(index=df.index)
    for target in columns:
        source = next((name for name in COLUMN_MAP[target] if name in df.columns), None)
        if source is None:
            logger.warning(f"No column for '{target}' in {csv_path.name}")
            standardized[target] = None
        else:
            standardized[target] = df[source].str.strip()

    return standardized.mask(standardized == "")


def _clean(value: Any) -> Optional[Any]:
    return None if pd.isna(value) else value


def _drop_invalid(df: pd.DataFrame, required: List[str], summary: ImportSummary) -> pd.DataFrame:
    valid = df.dropna(subset=required)
    summary.invalid = len(df) - len(valid)
    if summary.invalid:
        logger.warning(f"Dropped {summary.invalid} rows with a missing or invalid value in: {', '.join(required)}")
    return valid


def import_products(db: InventoryDB, csv_path: Path) -> ImportSummary:
    """
    Insert products from a CSV file, skipping product codes that already exist.

    Args:
        db: Database client
        csv_path: CSV with product code, name and optional category columns

    Returns:
        ImportSummary: Counts of imported, skipped and invalid rows
    """
    df = read_inventory_csv(csv_path, ["id_produk", "nama_produk", "kategori_produk"])
    summary = ImportSummary(rows_read=len(df))
    valid = _drop_invalid(df, ["id_produk", "nama_produk"], summary)

    for row in valid.itertuples(index=False):
        try:
            db.create_product(row.id_produk, row.nama_produk, _clean(row.kategori_produk))
            summary.imported += 1
        except ConflictError:
            logger.debug(f"Product {row.id_produk} already exists, skipping")
            summary.skipped += 1

    logger.info(f"Imported {summary.imported} products from {csv_path.name}")
    return summary


def import_stock(db: InventoryDB, csv_path: Path) -> ImportSummary:
    """
    Add stock quantities from a CSV file.

    Quantities accumulate onto existing stock rows. Rows for unknown
    product codes are skipped.

    Args:
        db: Database client
        csv_path: CSV with product code and quantity columns

    Returns:
        ImportSummary: Counts of imported, skipped and invalid rows
    """
    df = read_inventory_csv(csv_path, ["id_produk", "jumlah_stok"])
    # Quantities must be whole numbers that fit a PostgreSQL INTEGER
    quantities = pd.to_numeric(df["jumlah_stok"], errors="coerce")
    df["jumlah_stok"] = quantities.where((quantities % 1 == 0) & quantities.abs().le(INT4_MAX))

    summary = ImportSummary(rows_read=len(df))
    valid = _drop_invalid(df, ["id_produk", "jumlah_stok"], summary)

    for row in valid.itertuples(index=False):
        try:
            db.add_stock(row.id_produk, int(row.jumlah_stok))
            summary.imported += 1
        except NotFoundError:
            logger.warning(f"Unknown product {row.id_produk}, skipping stock row")
            summary.skipped += 1

    logger.info(f"Imported {summary.imported} stock rows from {csv_path.name}")
    return summary
