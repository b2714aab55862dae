"""
Canonical flow schema and header resolution.

Maps the column headers of an uploaded NetFlow export (nfdump, SiLK, Argus
or generic snake_case naming) to the canonical column names used by the
flow table, before any row is read.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .models import ColumnMapping, SchemaResolution
from .predicate import escape_identifier

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    'IPV4_SRC_ADDR',
    'IPV4_DST_ADDR',
    'L4_SRC_PORT',
    'L4_DST_PORT',
    'PROTOCOL',
)

OPTIONAL_COLUMNS = (
    'Attack',
    'L7_PROTO',
    'IN_BYTES',
    'OUT_BYTES',
    'IN_PKTS',
    'OUT_PKTS',
    'FLOW_START_MILLISECONDS',
    'FLOW_END_MILLISECONDS',
)

CANONICAL_COLUMNS = REQUIRED_COLUMNS + OPTIONAL_COLUMNS

# Accepted header names per canonical column, lowercase.
# The sets must stay pairwise disjoint.
COLUMN_ALIASES: Dict[str, List[str]] = {
    'IPV4_SRC_ADDR': [
        'ipv4_src_addr', 'sa', 'sip', 'srcaddr', 'src_ip', 'source_ip',
        'srcip', 'src_addr', 'saddr', 'source',
    ],
    'IPV4_DST_ADDR': [
        'ipv4_dst_addr', 'da', 'dip', 'dstaddr', 'dst_ip', 'dest_ip',
        'destination_ip', 'dstip', 'dst_addr', 'daddr', 'destination',
    ],
    'L4_SRC_PORT': [
        'l4_src_port', 'sp', 'sport', 'src_port', 'source_port', 'srcport',
    ],
    'L4_DST_PORT': [
        'l4_dst_port', 'dp', 'dport', 'dst_port', 'dest_port',
        'destination_port', 'dstport',
    ],
    'PROTOCOL': ['protocol', 'pr', 'proto', 'ip_protocol'],
    'Attack': [
        'attack', 'attack_type', 'attacktype', 'attack_cat', 'category',
        'threat', 'label',
    ],
    'L7_PROTO': ['l7_proto', 'l7_protocol', 'app_proto', 'application'],
    'IN_BYTES': ['in_bytes', 'ibyt', 'bytes_in', 'inbytes', 'rxbytes', 'sbytes'],
    'OUT_BYTES': ['out_bytes', 'obyt', 'bytes_out', 'outbytes', 'txbytes', 'dbytes'],
    'IN_PKTS': ['in_pkts', 'ipkt', 'pkts_in', 'inpkts', 'rxpackets', 'spkts'],
    'OUT_PKTS': ['out_pkts', 'opkt', 'pkts_out', 'outpkts', 'txpackets', 'dpkts'],
    'FLOW_START_MILLISECONDS': ['flow_start_milliseconds', 'flow_start_ms', 'start_ms'],
    'FLOW_END_MILLISECONDS': ['flow_end_milliseconds', 'flow_end_ms', 'end_ms'],
}

# Aliases ranked after every other alias of their column. NF-style exports
# carry a binary Label column next to the Attack column.
_FALLBACK_ALIASES: Dict[str, set] = {
    'Attack': {'label'},
}


def _normalize_header(header: Any) -> str:
    """Lowercase a header, dropping whitespace and a UTF-8 BOM."""
    if header is None:
        return ''
    return str(header).strip().lstrip('\ufeff').strip().lower()


def _find_header(
    canonical: str,
    headers: Sequence[Any],
    normalized: List[str],
) -> Optional[str]:
    """Return the header to use for one canonical column, or None.

    The first header, in file order, that matches any alias wins.
    Fallback aliases are only considered when no other alias matched.
    """
    fallback = _FALLBACK_ALIASES.get(canonical, set())
    aliases = set(COLUMN_ALIASES[canonical]) - fallback
    for candidates in (aliases, fallback):
        for original, name in zip(headers, normalized):
            if name in candidates:
                return original
    return None


def resolve_schema(headers: Sequence[Any]) -> SchemaResolution:
    """Resolve a header row to a canonical column mapping.

    Never raises; failure is reported through the result.

    Args:
        headers: The raw header row of the uploaded file

    Returns:
        SchemaResolution; on failure missing_columns lists the required
        canonical names not found and found_headers echoes the input
    """
    headers = list(headers)
    normalized = [_normalize_header(h) for h in headers]

    mapping: ColumnMapping = {}
    for canonical in CANONICAL_COLUMNS:
        header = _find_header(canonical, headers, normalized)
        if header is not None:
            mapping[canonical] = header

    missing = [c for c in REQUIRED_COLUMNS if c not in mapping]
    if missing:
        logger.warning(
            f"Schema resolution failed: missing {', '.join(missing)} "
            f"in {len(headers)} headers"
        )
        return SchemaResolution(
            success=False,
            mapping=mapping,
            missing_columns=missing,
            found_headers=headers,
        )

    logger.debug(f"Resolved {len(mapping)} canonical columns")
    return SchemaResolution(success=True, mapping=mapping, found_headers=headers)


def validate_mapping(mapping: ColumnMapping, headers: Sequence[Any]) -> SchemaResolution:
    """Check a manually assigned mapping against a header row.

    Unknown canonical names and headers not present in the file are
    dropped; the mapping succeeds only if every required column remains.
    """
    headers = list(headers)
    present = set(headers)
    accepted = {
        canonical: source
        for canonical, source in mapping.items()
        if canonical in COLUMN_ALIASES and source in present
    }
    missing = [c for c in REQUIRED_COLUMNS if c not in accepted]
    return SchemaResolution(
        success=not missing,
        mapping=accepted,
        missing_columns=missing,
        found_headers=headers,
    )


def build_column_aliases(mapping: ColumnMapping) -> str:
    """Build a SELECT list that renames source headers to canonical names.

    >>> build_column_aliases({'IPV4_SRC_ADDR': 'sa', 'PROTOCOL': 'PROTOCOL'})
    '"sa" AS IPV4_SRC_ADDR, PROTOCOL'
    """
    columns = []
    for canonical, source in mapping.items():
        if source == canonical:
            columns.append(canonical)
        else:
            columns.append(f"{escape_identifier(source)} AS {canonical}")
    return ', '.join(columns)


def apply_mapping(row: Dict[str, Any], mapping: ColumnMapping) -> Dict[str, Any]:
    """Rewrite one record's keys from source headers to canonical names.

    Unmapped columns are kept under their own name unless that name is
    already taken by a canonical column.
    """
    renames = {source: canonical for canonical, source in mapping.items()}
    result: Dict[str, Any] = {}
    for key, value in row.items():
        if key in renames:
            result[renames[key]] = value
        elif key not in mapping:
            result.setdefault(key, value)
    return result


def alias_collisions() -> List[str]:
    """Return aliases that appear under more than one canonical column."""
    seen: Dict[str, str] = {}
    collisions = []
    for canonical, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in seen and seen[alias] != canonical:
                collisions.append(alias)
            seen[alias] = canonical
    return collisions
