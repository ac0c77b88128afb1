"""Statistics dictionary: per field name aggregates of observed values."""

import re
from collections import defaultdict
from dataclasses import dataclass, field

from mortimer.histogram import Histogram


INT = 'INT'
STRING = 'STRING'

# Names whose string values are too diverse to count individually
HIGH_CARDINALITY_NAMES = frozenset({'median'})

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INT_RE = re.compile(r'^[+-]?\d+$')


def parse_int64(raw: str) -> int | None:
    """Parse a base 10 signed 64-bit integer, None when it is not one."""
    if not _INT_RE.match(raw):
        return None
    value = int(raw)
    if value < INT64_MIN or value > INT64_MAX:
        return None
    return value


def reconcile_kind(current: str, incoming: str) -> str:
    """Kind of an entry observed as both current and incoming.

    Conflicting kinds are promoted to STRING.
    """
    if current == incoming:
        return current
    return STRING


@dataclass
class DictEntry:
    """Aggregate statistics for one field name."""

    kind: str  # For example, INT or STRING
    seen: int = 0  # Number of times this name was observed
    vals: defaultdict[str, int] = field(default_factory=lambda: defaultdict(int))  # STRING value counts
    histogram: Histogram | None = None  # INT values
    total: int = 0  # Sum of histogrammed INT values


class Dictionary:
    """Mapping of field names to DictEntry.

    A Dictionary is not thread safe; the pipeline gives every file its own
    and merges them under a lock.
    """

    def __init__(self):
        self.entries: dict[str, DictEntry] = {}

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __getitem__(self, name: str) -> DictEntry:
        return self.entries[name]

    def get(self, name: str) -> DictEntry | None:
        return self.entries.get(name)

    def items(self):
        return self.entries.items()

    def record(self, kind: str, name: str, raw_value: str):
        """Record one observation of name with a value of the given kind.

        INT values that fail to parse, or are negative, still count as seen
        but stay out of the histogram and total.
        """
        entry = self.entries.get(name)
        if entry is None:
            entry = DictEntry(kind=kind)
            self.entries[name] = entry
        else:
            entry.kind = reconcile_kind(entry.kind, kind)

        entry.seen += 1

        if kind == STRING:
            if name not in HIGH_CARDINALITY_NAMES:
                entry.vals[raw_value] += 1
        elif kind == INT:
            value = parse_int64(raw_value)
            if value is not None and value >= 0:
                if entry.histogram is None:
                    entry.histogram = Histogram()
                entry.histogram.add(value)
                entry.total += value

    def merge_into(self, dst: 'Dictionary'):
        """Add every entry of this dictionary into dst.

        Raises:
            HistogramConfigError: If histogram bucket parameters differ
        """
        for name, src_entry in self.entries.items():
            dst_entry = dst.entries.get(name)
            if dst_entry is None:
                dst_entry = DictEntry(kind=src_entry.kind)
                dst.entries[name] = dst_entry
            else:
                dst_entry.kind = reconcile_kind(dst_entry.kind, src_entry.kind)

            dst_entry.seen += src_entry.seen

            for val, count in src_entry.vals.items():
                dst_entry.vals[val] += count

            if src_entry.histogram is not None:
                if dst_entry.histogram is None:
                    dst_entry.histogram = src_entry.histogram.copy()
                else:
                    dst_entry.histogram.merge(src_entry.histogram)

            dst_entry.total += src_entry.total
