"""
Filter-to-predicate compiler.

Turns a FilterState into a single SQL boolean expression suitable for the
WHERE clause of a dashboard query. The compiler is a pure function: it never
fails and degrades to the always-true predicate ``1=1`` when no constraint
is set.

String values are escaped before being quoted. The custom filter is a raw
SQL expression and is passed through verbatim inside parentheses; it must
only come from trusted input, or be checked with validate_custom_filter()
first.
"""

import logging
import re
from numbers import Integral
from typing import Iterable, List, Optional, Union

from .errors import UnsafeFilterError
from .models import FilterState

logger = logging.getLogger(__name__)

TRUE_PREDICATE = '1=1'

VALID_OPERATORS = ('=', '!=', '<>', '<', '>', '<=', '>=')

_COLUMN_NAME = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')

_RESERVED_COLUMN_NAMES = {
    'DROP', 'DELETE', 'INSERT', 'UPDATE', 'SELECT',
    'UNION', 'CREATE', 'ALTER', 'TRUNCATE',
}

_DANGEROUS_PATTERNS = [
    re.compile(r';\s*DROP', re.IGNORECASE),
    re.compile(r';\s*DELETE', re.IGNORECASE),
    re.compile(r';\s*INSERT', re.IGNORECASE),
    re.compile(r';\s*UPDATE', re.IGNORECASE),
    re.compile(r';\s*CREATE', re.IGNORECASE),
    re.compile(r';\s*ALTER', re.IGNORECASE),
    re.compile(r';\s*TRUNCATE', re.IGNORECASE),
    re.compile(r'UNION\s+SELECT', re.IGNORECASE),
    re.compile(r'--'),
    re.compile(r'/\*'),
    re.compile(r"'\s*OR\s+'?1'?\s*=\s*'?1", re.IGNORECASE),
]

_DANGEROUS_KEYWORDS = {'DROP', 'DELETE', 'INSERT', 'UPDATE', 'CREATE', 'ALTER', 'TRUNCATE'}


def escape_string(value: str) -> str:
    """Escape a value for use inside a single-quoted SQL literal.

    Backslashes are doubled first, then single quotes.

    >>> escape_string("O'Brien")
    "O''Brien"
    """
    return value.replace('\\', '\\\\').replace("'", "''")


def escape_like_pattern(value: str) -> str:
    """Escape quotes and LIKE wildcards in a search pattern."""
    return value.replace("'", "''").replace('%', '\\%').replace('_', '\\_')


def escape_identifier(name: str) -> str:
    """Double-quote an identifier, escaping embedded double quotes."""
    return '"' + name.replace('"', '""') + '"'


def is_valid_column_name(name: str) -> bool:
    """Check that a bare column name is safe to splice into SQL."""
    if not name or not name.strip():
        return False
    if not _COLUMN_NAME.match(name):
        return False
    return name.upper() not in _RESERVED_COLUMN_NAMES


def validate_custom_filter(condition: str) -> None:
    """Reject custom filters carrying obvious injection patterns.

    This is a coarse guard for user-facing surfaces, not a SQL parser.

    Raises:
        UnsafeFilterError: If a forbidden pattern or keyword is present
    """
    for pattern in _DANGEROUS_PATTERNS:
        if pattern.search(condition):
            raise UnsafeFilterError(
                "Custom filter contains a forbidden pattern"
            )

    for word in condition.upper().split():
        if word in _DANGEROUS_KEYWORDS:
            raise UnsafeFilterError(
                f"Custom filter contains forbidden keyword '{word}'"
            )


def _format_number(value: Union[int, float]) -> str:
    """Render a numeric literal; anything else is rejected by int()/float()."""
    if isinstance(value, Integral):
        return str(int(value))
    return repr(float(value))


def _format_value(value: Union[str, int, float]) -> str:
    if isinstance(value, str):
        return f"'{escape_string(value)}'"
    return _format_number(value)


class WhereClauseBuilder:
    """Accumulates conjuncts and joins them with AND.

    Example:
        where = (WhereClauseBuilder()
                 .add_in_clause('IPV4_SRC_ADDR', ['10.0.0.1', '10.0.0.2'])
                 .add_range('FLOW_START_MILLISECONDS', start, None)
                 .build())
    """

    def __init__(self):
        """Initialize an empty builder."""
        self.conditions: List[str] = []

    def add_in_clause(
        self,
        column: str,
        values: Iterable[Union[str, int]],
    ) -> 'WhereClauseBuilder':
        """Add ``column IN (...)``; strings are quoted, numbers are not.

        An empty value list adds nothing.
        """
        rendered = [_format_value(v) for v in values]
        if rendered:
            self.conditions.append(f"{column} IN ({', '.join(rendered)})")
        return self

    def add_range(
        self,
        column: str,
        minimum: Optional[Union[int, float]],
        maximum: Optional[Union[int, float]],
    ) -> 'WhereClauseBuilder':
        """Add inclusive bounds; a None side is skipped."""
        if minimum is not None:
            self.conditions.append(f"{column} >= {_format_number(minimum)}")
        if maximum is not None:
            self.conditions.append(f"{column} <= {_format_number(maximum)}")
        return self

    def add_like(self, column: str, pattern: str) -> 'WhereClauseBuilder':
        """Add a ``LIKE '%pattern%'`` substring match."""
        if pattern and pattern.strip():
            self.conditions.append(
                f"{column} LIKE '%{escape_like_pattern(pattern)}%'"
            )
        return self

    def add_condition(
        self,
        column: str,
        operator: str,
        value: Union[str, int, float],
    ) -> 'WhereClauseBuilder':
        """Add a single comparison.

        Raises:
            ValueError: If the operator is not one of VALID_OPERATORS
        """
        if operator not in VALID_OPERATORS:
            raise ValueError(
                f"Invalid operator: {operator}. "
                f"Valid operators: {', '.join(VALID_OPERATORS)}"
            )
        self.conditions.append(f"{column} {operator} {_format_value(value)}")
        return self

    def add_custom(self, condition: Optional[str]) -> 'WhereClauseBuilder':
        """Add a raw SQL expression wrapped in parentheses.

        Blank or None conditions are skipped. No validation is performed.
        """
        if condition and condition.strip():
            self.conditions.append(f"({condition})")
        return self

    def build(self) -> str:
        """Join the conjuncts with AND, or return ``1=1`` when there are none."""
        if not self.conditions:
            return TRUE_PREDICATE
        return ' AND '.join(self.conditions)

    def has_conditions(self) -> bool:
        return bool(self.conditions)

    def condition_count(self) -> int:
        return len(self.conditions)


def build_where_clause(filters: FilterState) -> WhereClauseBuilder:
    """Collect the conjuncts for a FilterState.

    Conjuncts are emitted in a fixed field order: time start, time end,
    source IPs, destination IPs, attack types, protocols, L7 protocols,
    source ports, destination ports, custom filter. Values keep their
    given order inside each IN list.

    Args:
        filters: The filter state to compile

    Returns:
        A builder holding one conjunct per constrained field
    """
    builder = WhereClauseBuilder()

    builder.add_range('FLOW_START_MILLISECONDS', filters.time_range.start, None)
    builder.add_range('FLOW_END_MILLISECONDS', None, filters.time_range.end)

    builder.add_in_clause('IPV4_SRC_ADDR', filters.src_ips)
    builder.add_in_clause('IPV4_DST_ADDR', filters.dst_ips)
    builder.add_in_clause('Attack', filters.attack_types)

    # Integer columns; int() keeps stray strings from being spliced in
    builder.add_in_clause('PROTOCOL', [int(v) for v in filters.protocols])
    builder.add_in_clause('L7_PROTO', [int(v) for v in filters.l7_protocols])
    builder.add_in_clause('L4_SRC_PORT', [int(v) for v in filters.src_ports])
    builder.add_in_clause('L4_DST_PORT', [int(v) for v in filters.dst_ports])

    builder.add_custom(filters.custom_filter)
    return builder


def compile_where_clause(filters: FilterState) -> str:
    """Compile a FilterState into a SQL WHERE fragment.

    Args:
        filters: The filter state to compile

    Returns:
        A SQL boolean expression, ``1=1`` when nothing is constrained
    """
    builder = build_where_clause(filters)
    where = builder.build()
    logger.debug(f"Compiled {builder.condition_count()} conditions: {where}")
    return where
