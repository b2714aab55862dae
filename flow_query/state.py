"""
Thread-safe, versioned owner of the dashboard filter state.

The store is the only place the FilterState is mutated. Each mutation
bumps ``version`` so callers can tell whether a previously compiled WHERE
clause is stale; the compiler itself only ever sees a snapshot.
"""

import copy
import threading
from typing import Iterable, List, Optional

from .models import FilterState, TimeRange
from .predicate import compile_where_clause


class FilterStore:
    """Thread-safe holder for a FilterState."""

    def __init__(self, initial: Optional[FilterState] = None):
        """Initialize the store.

        Args:
            initial: Optional starting state (copied)
        """
        self._lock = threading.RLock()
        self._state = copy.deepcopy(initial) if initial else FilterState()
        self._version = 0

    @property
    def version(self) -> int:
        """Number of mutations applied so far."""
        with self._lock:
            return self._version

    def snapshot(self) -> FilterState:
        """Return an independent copy of the current state."""
        with self._lock:
            return copy.deepcopy(self._state)

    def where_clause(self) -> str:
        """Compile the current state into a WHERE fragment."""
        return compile_where_clause(self.snapshot())

    def _bump(self) -> int:
        self._version += 1
        return self._version

    @staticmethod
    def _add(values: List, value) -> bool:
        if value in values:
            return False
        values.append(value)
        return True

    @staticmethod
    def _remove(values: List, value) -> bool:
        if value not in values:
            return False
        values.remove(value)
        return True

    def set_time_range(self, start: Optional[int], end: Optional[int]) -> int:
        """Replace the time range; None leaves that side unbounded."""
        with self._lock:
            self._state.time_range = TimeRange(start=start, end=end)
            return self._bump()

    def add_src_ip(self, ip: str) -> int:
        """Add a source IP unless already present."""
        with self._lock:
            if self._add(self._state.src_ips, ip):
                self._bump()
            return self._version

    def remove_src_ip(self, ip: str) -> int:
        with self._lock:
            if self._remove(self._state.src_ips, ip):
                self._bump()
            return self._version

    def add_dst_ip(self, ip: str) -> int:
        """Add a destination IP unless already present."""
        with self._lock:
            if self._add(self._state.dst_ips, ip):
                self._bump()
            return self._version

    def remove_dst_ip(self, ip: str) -> int:
        with self._lock:
            if self._remove(self._state.dst_ips, ip):
                self._bump()
            return self._version

    def add_src_port(self, port: int) -> int:
        with self._lock:
            if self._add(self._state.src_ports, int(port)):
                self._bump()
            return self._version

    def add_dst_port(self, port: int) -> int:
        with self._lock:
            if self._add(self._state.dst_ports, int(port)):
                self._bump()
            return self._version

    def remove_src_port(self, port: int) -> int:
        with self._lock:
            if self._remove(self._state.src_ports, int(port)):
                self._bump()
            return self._version

    def remove_dst_port(self, port: int) -> int:
        with self._lock:
            if self._remove(self._state.dst_ports, int(port)):
                self._bump()
            return self._version

    def set_protocols(self, protocols: Iterable[int]) -> int:
        with self._lock:
            self._state.protocols = [int(p) for p in protocols]
            return self._bump()

    def set_l7_protocols(self, protocols: Iterable[int]) -> int:
        with self._lock:
            self._state.l7_protocols = [int(p) for p in protocols]
            return self._bump()

    def set_attack_types(self, attack_types: Iterable[str]) -> int:
        with self._lock:
            self._state.attack_types = list(attack_types)
            return self._bump()

    def toggle_attack_type(self, attack_type: str) -> int:
        """Add the attack type if absent, remove it if present."""
        with self._lock:
            if not self._remove(self._state.attack_types, attack_type):
                self._state.attack_types.append(attack_type)
            return self._bump()

    def set_custom_filter(self, custom_filter: Optional[str]) -> int:
        """Set the raw SQL custom filter (trusted input only)."""
        with self._lock:
            self._state.custom_filter = custom_filter
            return self._bump()

    def set_result_count(self, count: Optional[int]) -> int:
        """Record the last result count; does not change the predicate."""
        with self._lock:
            self._state.result_count = count
            return self._version

    def clear(self) -> int:
        """Reset every filter field."""
        with self._lock:
            self._state = FilterState()
            return self._bump()
