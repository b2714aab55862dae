"""
CSV ingestion onto the canonical flow schema.

The header row is resolved before any data row is read. Ingestion only
proceeds when every required column is mapped, either automatically or
through a manual mapping supplied by the caller.
"""

import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .errors import SchemaResolutionError
from .models import ColumnMapping, SchemaResolution
from .schema import apply_mapping, resolve_schema, validate_mapping

logger = logging.getLogger(__name__)


def read_headers(input_file: str | Path) -> List[str]:
    """Return the header row of a CSV file.

    Raises:
        ValueError: If the file does not exist or is empty
    """
    path = Path(input_file)
    if not path.exists():
        raise ValueError(f"Input file not found: {input_file}")

    with open(path, 'r', newline='', encoding='utf-8-sig') as f:
        reader = csv.reader(f)
        try:
            return next(reader)
        except StopIteration:
            raise ValueError(f"Input file is empty: {input_file}")


def resolve_file(
    input_file: str | Path,
    mapping: Optional[ColumnMapping] = None,
) -> SchemaResolution:
    """Resolve a file's headers, or check a manual mapping against them."""
    headers = read_headers(input_file)
    if mapping is not None:
        return validate_mapping(mapping, headers)
    return resolve_schema(headers)


def iter_canonical_rows(
    input_file: str | Path,
    resolution: SchemaResolution,
) -> Iterator[Dict[str, Any]]:
    """Yield the file's data rows with canonical keys.

    Raises:
        SchemaResolutionError: If the resolution did not succeed
    """
    if not resolution.success:
        raise SchemaResolutionError(resolution)

    with open(input_file, 'r', newline='', encoding='utf-8-sig') as f:
        reader = csv.DictReader(f)
        for row in reader:
            yield apply_mapping(row, resolution.mapping)


def ingest_csv(
    input_file: str | Path,
    mapping: Optional[ColumnMapping] = None,
) -> List[Dict[str, Any]]:
    """Load a CSV export into canonical-keyed rows.

    Args:
        input_file: Path to the CSV file
        mapping: Optional manual canonical -> header mapping

    Returns:
        List of row dictionaries keyed by canonical column names

    Raises:
        ValueError: If the file is missing or empty
        SchemaResolutionError: If required columns cannot be mapped
    """
    resolution = resolve_file(input_file, mapping)
    if not resolution.success:
        logger.warning(f"Refusing to ingest {input_file}: {', '.join(resolution.missing_columns)} missing")
        raise SchemaResolutionError(resolution)

    rows = list(iter_canonical_rows(input_file, resolution))
    logger.info(f"Ingested {len(rows)} rows from {input_file}")
    return rows
