"""Pydantic models for persisted and exchanged data"""

from pydantic import BaseModel, Field

from mortimer.dictionary import Dictionary, DictEntry
from mortimer.histogram import Histogram


class HistogramModel(BaseModel):
    """Serialized Histogram

    Attributes:
        num_buckets: Number of buckets
        first_width: Width of the first bucket
        growth: Growth factor of successive bucket boundaries
        ranges: Lower bound of every bucket
        counts: Count of values per bucket
        min_value: Smallest value added
        max_value: Largest value added
    """

    num_buckets: int = Field(..., examples=[20])
    first_width: int = Field(..., examples=[10])
    growth: float = Field(..., examples=[3.0])
    ranges: list[int] = Field(..., description="Lower bound of each bucket")
    counts: list[int] = Field(..., description="Number of values per bucket")
    min_value: int | None = Field(None, description="Smallest value added")
    max_value: int | None = Field(None, description="Largest value added")

    @classmethod
    def from_histogram(cls, h: Histogram) -> 'HistogramModel':
        return cls(
            num_buckets=h.num_buckets,
            first_width=h.first_width,
            growth=h.growth,
            ranges=list(h.ranges),
            counts=list(h.counts),
            min_value=h.min_value,
            max_value=h.max_value,
        )

    def to_histogram(self) -> Histogram:
        h = Histogram(self.num_buckets, self.first_width, self.growth)
        h.counts = list(self.counts)
        h.min_value = self.min_value
        h.max_value = self.max_value
        return h


class DictEntryModel(BaseModel):
    """Serialized statistics for one field name"""

    kind: str = Field(..., examples=["INT"], description="Value kind, INT or STRING")
    seen: int = Field(..., examples=[42], description="Number of observations")
    vals: dict[str, int] | None = Field(None, description="Counts per STRING value, omitted when empty")
    histogram: HistogramModel | None = Field(None, description="INT value histogram, omitted when absent")
    total: int = Field(0, description="Sum of histogrammed INT values")

    @classmethod
    def from_entry(cls, entry: DictEntry) -> 'DictEntryModel':
        return cls(
            kind=entry.kind,
            seen=entry.seen,
            vals=dict(entry.vals) if entry.vals else None,
            histogram=HistogramModel.from_histogram(entry.histogram) if entry.histogram is not None else None,
            total=entry.total,
        )

    def to_entry(self) -> DictEntry:
        entry = DictEntry(kind=self.kind, seen=self.seen, total=self.total)
        if self.vals:
            entry.vals.update(self.vals)
        if self.histogram is not None:
            entry.histogram = self.histogram.to_histogram()
        return entry


class DictionarySnapshot(BaseModel):
    """Global dictionary written once per run

    Attributes:
        min_ts: Earliest entry timestamp seen
        max_ts: Latest entry timestamp seen
        dictionary: Statistics keyed by field name
    """

    min_ts: str | None = Field(None, examples=["2016-04-14T16:10:05.262"])
    max_ts: str | None = Field(None, examples=["2016-04-14T17:43:52.164"])
    dictionary: dict[str, DictEntryModel] = Field(default_factory=dict)

    @classmethod
    def from_dictionary(cls, d: Dictionary, min_ts: str | None = None, max_ts: str | None = None):
        return cls(
            min_ts=min_ts,
            max_ts=max_ts,
            dictionary={name: DictEntryModel.from_entry(entry) for name, entry in sorted(d.items())},
        )

    def to_dictionary(self) -> Dictionary:
        d = Dictionary()
        for name, model in self.dictionary.items():
            d.entries[name] = model.to_entry()
        return d

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True, indent=1)

    def to_cli(self, top: int = 5, colorize: bool = False) -> str:
        """Format the snapshot as a human-readable summary."""
        BOLD = '\033[1m'
        CYAN = '\033[36m'
        YELLOW = '\033[33m'
        GREY = '\033[90m'
        RESET = '\033[0m'

        lines = []

        if colorize:
            lines.append(f"{BOLD}Dictionary{RESET}")
        else:
            lines.append("Dictionary")
        lines.append(f"Time range: {self.min_ts or '-'} .. {self.max_ts or '-'}")
        lines.append(f"Names: {len(self.dictionary)}")
        lines.append("")

        for name, entry in sorted(self.dictionary.items(), key=lambda kv: (-kv[1].seen, kv[0])):
            if colorize:
                header = f"{CYAN}{name}{RESET} {GREY}{entry.kind}{RESET} seen={YELLOW}{entry.seen}{RESET}"
            else:
                header = f"{name} {entry.kind} seen={entry.seen}"
            if entry.histogram is not None:
                header += f" total={entry.total} min={entry.histogram.min_value} max={entry.histogram.max_value}"
            lines.append(header)

            if entry.vals and top > 0:
                ranked = sorted(entry.vals.items(), key=lambda kv: (-kv[1], kv[0]))[:top]
                for val, count in ranked:
                    lines.append(f"    {count:>8}  {val}")

        return "\n".join(lines)


class GraphEntry(BaseModel):
    """One timestamped observation of a numeric field"""

    ts: str = Field(..., examples=["2016-04-14T16:10:09.463447"])
    level: str = Field("", examples=["WARNING"])
    file_label: str = Field(..., examples=["node1/memcached.log"], description="Source dir/file")
    offset_byte: int = Field(..., description="Byte offset of the entry in its file")
    offset_line: int = Field(..., description="Line number of the entry in its file")
    module: str = Field("", examples=["ns_server"])
    path: str = Field("", description="Scope path of the field, segments joined by '.'")
    val: str = Field(..., examples=["5"])


class GraphData(BaseModel):
    """Graph data feed keyed by field name"""

    rev: int = Field(0, description="Revision, bumped on every merge")
    data: dict[str, list[GraphEntry]] = Field(default_factory=dict)

    def add(self, incoming: 'GraphData'):
        """Merge incoming entries, keeping every list ordered by timestamp.

        Entries are appended and stably re-sorted, so merging the same batch
        twice keeps both copies.
        """
        for name, entries in incoming.data.items():
            merged = self.data.get(name, []) + list(entries)
            merged.sort(key=lambda e: e.ts)
            self.data[name] = merged

        if self.rev < incoming.rev:
            self.rev = incoming.rev
        self.rev += 1


class ProgressResponse(BaseModel):
    """Snapshot of a processing run's progress"""

    min_ts: str | None = Field(None, description="Earliest entry timestamp merged so far")
    max_ts: str | None = Field(None, description="Latest entry timestamp merged so far")
    emit_done: bool = Field(False, description="True once every file has been processed")
    emit_progress: int = Field(0, description="Number of fields emitted so far")
    file_sizes: dict[str, dict[str, int]] = Field(
        default_factory=dict, description="File sizes in bytes keyed by directory then file"
    )
    file_progress: dict[str, dict[str, int]] = Field(
        default_factory=dict, description="Bytes processed keyed by directory then file"
    )
