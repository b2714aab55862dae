"""
Dashboard queries over the flow table.

Builds the SQL for each dashboard panel from a compiled WHERE fragment and
runs it through a warehouse client. The client itself lives outside this
package; anything with an ``execute(sql)`` method returning rows will do.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .normalize import normalize
from .predicate import TRUE_PREDICATE, is_valid_column_name

logger = logging.getLogger(__name__)

_TALKER_COLUMNS = {'src': 'IPV4_SRC_ADDR', 'dst': 'IPV4_DST_ADDR'}
_TALKER_METRICS = {'bytes': 'SUM(IN_BYTES + OUT_BYTES)', 'flows': 'COUNT(*)'}


class WarehouseClient(Protocol):
    """Executes SQL against the remote flow table."""

    def execute(self, sql: str) -> List[Dict[str, Any]]:
        ...


def _check_table(table: str) -> str:
    if not is_valid_column_name(table):
        raise ValueError(f"Invalid table name: {table}")
    return table


def _check_count(name: str, value: int, minimum: int = 0) -> int:
    value = int(value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def time_range_sql(table: str = 'flows') -> str:
    """Earliest flow start and latest flow end."""
    return (
        "SELECT MIN(FLOW_START_MILLISECONDS) AS min_time, "
        "MAX(FLOW_END_MILLISECONDS) AS max_time "
        f"FROM {_check_table(table)}"
    )


def attack_distribution_sql(where: str = TRUE_PREDICATE, table: str = 'flows') -> str:
    return (
        "SELECT Attack AS attack, COUNT(*) AS count "
        f"FROM {_check_table(table)} WHERE {where} "
        "GROUP BY Attack ORDER BY count DESC"
    )


def top_talkers_sql(
    direction: str,
    metric: str,
    limit: int = 10,
    where: str = TRUE_PREDICATE,
    table: str = 'flows',
) -> str:
    """Top source or destination IPs by flow count or total bytes.

    Raises:
        ValueError: If direction is not src/dst or metric not bytes/flows
    """
    if direction not in _TALKER_COLUMNS:
        raise ValueError(f"Invalid direction: {direction}")
    if metric not in _TALKER_METRICS:
        raise ValueError(f"Invalid metric: {metric}")
    column = _TALKER_COLUMNS[direction]
    return (
        f"SELECT {column} AS ip, {_TALKER_METRICS[metric]} AS value "
        f"FROM {_check_table(table)} WHERE {where} "
        f"GROUP BY {column} ORDER BY value DESC "
        f"LIMIT {_check_count('limit', limit, 1)}"
    )


def protocol_distribution_sql(where: str = TRUE_PREDICATE, table: str = 'flows') -> str:
    return (
        "SELECT PROTOCOL AS protocol, COUNT(*) AS count "
        f"FROM {_check_table(table)} WHERE {where} "
        "GROUP BY PROTOCOL ORDER BY count DESC"
    )


def timeline_sql(
    bucket_minutes: int = 60,
    where: str = TRUE_PREDICATE,
    table: str = 'flows',
) -> str:
    """Flow counts per attack label in fixed-size time buckets."""
    bucket_ms = _check_count('bucket_minutes', bucket_minutes, 1) * 60 * 1000
    return (
        f"SELECT (FLOW_START_MILLISECONDS // {bucket_ms}) * {bucket_ms} AS time, "
        "Attack AS attack, COUNT(*) AS count "
        f"FROM {_check_table(table)} WHERE {where} "
        "GROUP BY time, attack ORDER BY time, attack"
    )


def flows_sql(
    where: str = TRUE_PREDICATE,
    limit: int = 1000,
    offset: int = 0,
    table: str = 'flows',
) -> str:
    """One page of flow records, newest first."""
    return (
        f"SELECT * FROM {_check_table(table)} WHERE {where} "
        "ORDER BY FLOW_START_MILLISECONDS DESC "
        f"LIMIT {_check_count('limit', limit, 1)} "
        f"OFFSET {_check_count('offset', offset)}"
    )


def flow_count_sql(where: str = TRUE_PREDICATE, table: str = 'flows') -> str:
    return f"SELECT COUNT(*) AS cnt FROM {_check_table(table)} WHERE {where}"


@dataclass
class DashboardData:
    """Everything one dashboard refresh needs.

    Attributes:
        success: False if any query failed
        timeline: Rows of (time, attack, count)
        attacks: Rows of (attack, count)
        top_src_ips: Rows of (ip, value)
        top_dst_ips: Rows of (ip, value)
        flows: One page of flow records
        total_flow_count: Number of flows matching the WHERE clause
        execution_time_ms: Wall time for all queries
        error: Error message when success is False
    """
    success: bool
    timeline: List[Dict[str, Any]] = field(default_factory=list)
    attacks: List[Dict[str, Any]] = field(default_factory=list)
    top_src_ips: List[Dict[str, Any]] = field(default_factory=list)
    top_dst_ips: List[Dict[str, Any]] = field(default_factory=list)
    flows: List[Dict[str, Any]] = field(default_factory=list)
    total_flow_count: int = 0
    execution_time_ms: float = 0.0
    error: Optional[str] = None


class DashboardService:
    """Runs the dashboard queries for a WHERE clause."""

    def __init__(self, client: WarehouseClient, table: str = 'flows', top_talkers_limit: int = 10):
        """Initialize the service.

        Args:
            client: Warehouse client used to execute SQL
            table: Flow table name
            top_talkers_limit: Rows per top-talkers panel
        """
        self.client = client
        self.table = _check_table(table)
        self.top_talkers_limit = top_talkers_limit

    def run(self, sql: str) -> List[Dict[str, Any]]:
        """Execute one statement and normalize its rows."""
        logger.debug(f"Executing: {sql}")
        return normalize(self.client.execute(sql))

    def get_dashboard(
        self,
        where: str = TRUE_PREDICATE,
        bucket_minutes: int = 60,
        limit: int = 1000,
        offset: int = 0,
    ) -> DashboardData:
        """Fetch all dashboard panels.

        Invalid arguments raise ValueError before anything is executed;
        failures inside the warehouse client are reported on the result.
        """
        where = where or TRUE_PREDICATE
        statements = {
            'timeline': timeline_sql(bucket_minutes, where, self.table),
            'attacks': attack_distribution_sql(where, self.table),
            'top_src_ips': top_talkers_sql('src', 'flows', self.top_talkers_limit, where, self.table),
            'top_dst_ips': top_talkers_sql('dst', 'flows', self.top_talkers_limit, where, self.table),
            'flows': flows_sql(where, limit, offset, self.table),
            'count': flow_count_sql(where, self.table),
        }

        start_time = time.time()
        results: Dict[str, List[Dict[str, Any]]] = {}
        try:
            for name, sql in statements.items():
                results[name] = self.run(sql)
        except Exception as e:
            logger.error(f"Dashboard query '{name}' failed: {e}")
            return DashboardData(
                success=False,
                execution_time_ms=(time.time() - start_time) * 1000,
                error=f"Query '{name}' failed: {e}",
            )

        count_rows = results.pop('count')
        total = int(count_rows[0]['cnt']) if count_rows else 0

        return DashboardData(
            success=True,
            total_flow_count=total,
            execution_time_ms=(time.time() - start_time) * 1000,
            **results,
        )
