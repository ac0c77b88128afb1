"""Split a log file into multi-line entries."""

from dataclasses import dataclass, field
from typing import BinaryIO, Iterator

from mortimer.meta import FileMeta


@dataclass
class Entry:
    """One logical log record.

    Lines are kept without their line terminators.
    """

    start_offset: int  # Byte offset of the first line
    start_line: int  # 1-based line number of the first line
    source: str  # Label of the source file, e.g. 'dir/memcached.log'
    lines: list[str] = field(default_factory=list)


class EntrySegmenter:
    """Produces entries from a binary stream, tracking byte and line offsets.

    The first fmeta.header_size lines are discarded. Every line for which
    fmeta.entry_start returns true (or every line when there is no
    predicate) starts a new entry. Lines before the first entry start are
    discarded.
    """

    def __init__(self, fmeta: FileMeta, source: str):
        self.fmeta = fmeta
        self.source = source
        self.offset = 0  # Bytes consumed so far
        self.line_count = 0

    def entries(self, stream: BinaryIO) -> Iterator[Entry]:
        entry_start = self.fmeta.entry_start
        header_size = self.fmeta.header_size

        current = Entry(start_offset=0, start_line=0, source=self.source)

        for raw in stream:
            line = raw.decode('utf-8', errors='replace').rstrip('\r\n')

            self.line_count += 1
            if self.line_count <= header_size:
                self.offset += len(raw)
                continue

            if entry_start is None or entry_start(line):
                if current.start_line > 0 and current.lines:
                    yield current
                current = Entry(start_offset=self.offset, start_line=self.line_count, source=self.source)

            current.lines.append(line)
            self.offset += len(raw)

        if current.start_line > 0 and current.lines:
            yield current
