"""
Data models for the flow query toolkit.

Defines dataclasses for the dashboard filter state, its time range and the
result of resolving an uploaded file's headers against the canonical schema.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Canonical column name -> header string found in the source file
ColumnMapping = Dict[str, str]

ATTACK_LABELS = (
    'Benign',
    'Exploits',
    'Fuzzers',
    'DoS',
    'Reconnaissance',
    'Analysis',
    'Backdoor',
    'Shellcode',
    'Worms',
    'Generic',
)

# Wire name (camelCase, as sent by the UI) -> attribute name
_FIELD_ALIASES = {
    'timeRange': 'time_range',
    'srcIps': 'src_ips',
    'dstIps': 'dst_ips',
    'srcPorts': 'src_ports',
    'dstPorts': 'dst_ports',
    'protocols': 'protocols',
    'l7Protocols': 'l7_protocols',
    'attackTypes': 'attack_types',
    'customFilter': 'custom_filter',
    'resultCount': 'result_count',
}


@dataclass
class TimeRange:
    """Millisecond epoch bounds, both inclusive.

    Attributes:
        start: Lower bound or None for unbounded
        end: Upper bound or None for unbounded
    """
    start: Optional[int] = None
    end: Optional[int] = None

    def is_bounded(self) -> bool:
        """Return True if either side is set."""
        return self.start is not None or self.end is not None


@dataclass
class FilterState:
    """Complete description of an ad-hoc flow query refinement.

    Every field is optional; an empty list or None means "no constraint".
    List fields keep the order in which values were added.

    Attributes:
        time_range: Inclusive millisecond bounds on flow start/end
        src_ips: Source IP literals
        dst_ips: Destination IP literals
        src_ports: Source ports
        dst_ports: Destination ports
        protocols: IANA protocol numbers
        l7_protocols: Application-layer protocol codes
        attack_types: Attack labels (see ATTACK_LABELS)
        custom_filter: Raw SQL boolean expression, trusted input only
        result_count: Informational, never part of the predicate
    """
    time_range: TimeRange = field(default_factory=TimeRange)
    src_ips: List[str] = field(default_factory=list)
    dst_ips: List[str] = field(default_factory=list)
    src_ports: List[int] = field(default_factory=list)
    dst_ports: List[int] = field(default_factory=list)
    protocols: List[int] = field(default_factory=list)
    l7_protocols: List[int] = field(default_factory=list)
    attack_types: List[str] = field(default_factory=list)
    custom_filter: Optional[str] = None
    result_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FilterState':
        """Build a FilterState from a camelCase or snake_case dictionary.

        Unknown keys are ignored.
        """
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = _FIELD_ALIASES.get(key, key)
            if name in _FIELD_ALIASES.values():
                values[name] = value

        time_range = values.pop('time_range', None) or {}
        if isinstance(time_range, TimeRange):
            time_range = TimeRange(time_range.start, time_range.end)
        else:
            time_range = TimeRange(
                start=time_range.get('start'),
                end=time_range.get('end'),
            )
        # int() rejects NaN and drops float noise from JSON numbers
        if time_range.start is not None:
            time_range.start = int(time_range.start)
        if time_range.end is not None:
            time_range.end = int(time_range.end)

        for name in ('src_ips', 'dst_ips', 'attack_types'):
            values[name] = [str(v) for v in values.get(name) or []]
        for name in ('src_ports', 'dst_ports', 'protocols', 'l7_protocols'):
            values[name] = [int(v) for v in values.get(name) or []]

        return cls(time_range=time_range, **values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire format."""
        return {
            'timeRange': {'start': self.time_range.start, 'end': self.time_range.end},
            'srcIps': list(self.src_ips),
            'dstIps': list(self.dst_ips),
            'srcPorts': list(self.src_ports),
            'dstPorts': list(self.dst_ports),
            'protocols': list(self.protocols),
            'l7Protocols': list(self.l7_protocols),
            'attackTypes': list(self.attack_types),
            'customFilter': self.custom_filter,
            'resultCount': self.result_count,
        }


@dataclass
class SchemaResolution:
    """Result of resolving a header row against the canonical schema.

    Attributes:
        success: True when every required canonical column was found
        mapping: Canonical name -> source header for every column found
            (partial on failure, for pre-filling a manual mapping)
        missing_columns: Required canonical names not found, in declaration order
        found_headers: The original header list, unchanged
    """
    success: bool
    mapping: ColumnMapping = field(default_factory=dict)
    missing_columns: List[str] = field(default_factory=list)
    found_headers: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase wire format."""
        if self.success:
            return {'success': True, 'mapping': dict(self.mapping)}
        return {
            'success': False,
            'mapping': dict(self.mapping),
            'missingColumns': list(self.missing_columns),
            'foundHeaders': list(self.found_headers),
        }
