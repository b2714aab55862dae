"""
Flow Query Package.

Compiles NetFlow dashboard filters into SQL predicates and maps uploaded
flow exports onto the canonical flow schema.
"""

from .errors import (
    ConfigError,
    FlowQueryError,
    SchemaResolutionError,
    UnsafeFilterError,
)
from .models import ColumnMapping, FilterState, SchemaResolution, TimeRange
from .normalize import normalize
from .predicate import (
    WhereClauseBuilder,
    compile_where_clause,
    validate_custom_filter,
)
from .schema import REQUIRED_COLUMNS, resolve_schema
from .state import FilterStore

__all__ = [
    'ColumnMapping',
    'ConfigError',
    'FilterState',
    'FilterStore',
    'FlowQueryError',
    'REQUIRED_COLUMNS',
    'SchemaResolution',
    'SchemaResolutionError',
    'TimeRange',
    'UnsafeFilterError',
    'WhereClauseBuilder',
    'compile_where_clause',
    'normalize',
    'resolve_schema',
    'validate_custom_filter',
]
