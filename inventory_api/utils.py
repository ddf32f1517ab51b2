"""
Utility functions for the Inventory application.

Common helpers used by the database client, the API and the importer.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional

from loguru import logger


def normalize_dsn(dsn: str) -> str:
    """
    Normalize a database URL for SQLAlchemy.

    Hosted providers hand out ``postgres://`` URLs, which SQLAlchemy no longer
    accepts as a dialect name.

    Args:
        dsn: Database connection string

    Returns:
        str: Connection string with a ``postgresql://`` scheme
    """
    if dsn.startswith("postgres://"):
        logger.debug("Rewriting postgres:// scheme to postgresql://")
        return dsn.replace("postgres://", "postgresql://", 1)
    return dsn


def build_search_pattern(search: Optional[str]) -> Optional[str]:
    """
    Build an ILIKE pattern matching ``search`` anywhere in a column.

    LIKE wildcards in the search term are escaped so the term is matched
    literally.

    Args:
        search: Raw search term from the query string

    Returns:
        str: Pattern such as ``%widget%``, or None when there is nothing to search
    """
    if search is None:
        return None

    term = search.strip()
    if not term:
        return None

    term = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{term}%"


def is_blank(value: Any) -> bool:
    """True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def missing_fields(payload: Mapping[str, Any], required: Iterable[str]) -> List[str]:
    """
    List the required fields that are absent or blank in ``payload``.

    Args:
        payload: Field values by name
        required: Names of required fields

    Returns:
        List[str]: Missing field names, in the order given
    """
    return [name for name in required if is_blank(payload.get(name))]


def rows_to_dicts(result) -> List[Dict[str, Any]]:
    """Convert a SQLAlchemy result into a list of plain dictionaries."""
    return [dict(row) for row in result.mappings()]
