"""Tests for splitting files into entries."""

import io

from mortimer.meta import FileMeta
from mortimer.segmenter import EntrySegmenter


def starts_with_e(line: str) -> bool:
    return line.startswith('E')


class TestEntrySegmenter:
    """Entry boundaries and offsets."""

    def test_header_and_continuation_lines(self):
        data = b'h1\nh2\nE1 a\ncont\nE2 b\n'
        fmeta = FileMeta(header_size=2, entry_start=starts_with_e)

        entries = list(EntrySegmenter(fmeta, 'node/app.log').entries(io.BytesIO(data)))

        assert [e.lines for e in entries] == [['E1 a', 'cont'], ['E2 b']]
        assert [e.start_offset for e in entries] == [6, 16]
        assert [e.start_line for e in entries] == [3, 5]
        assert all(e.source == 'node/app.log' for e in entries)

    def test_lines_before_first_entry_are_dropped(self):
        fmeta = FileMeta(entry_start=starts_with_e)
        entries = list(EntrySegmenter(fmeta, 'f').entries(io.BytesIO(b'junk\nmore junk\nE1\n')))
        assert len(entries) == 1
        assert entries[0].lines == ['E1']
        assert entries[0].start_line == 3

    def test_no_predicate_means_every_line_is_an_entry(self):
        entries = list(EntrySegmenter(FileMeta(), 'f').entries(io.BytesIO(b'a\nb\nc\n')))
        assert [e.lines for e in entries] == [['a'], ['b'], ['c']]
        assert [e.start_offset for e in entries] == [0, 2, 4]

    def test_crlf_line_endings(self):
        entries = list(EntrySegmenter(FileMeta(), 'f').entries(io.BytesIO(b'E1\r\nE2\r\n')))
        assert [e.lines for e in entries] == [['E1'], ['E2']]
        assert [e.start_offset for e in entries] == [0, 4]

    def test_last_line_without_newline(self):
        entries = list(EntrySegmenter(FileMeta(), 'f').entries(io.BytesIO(b'E1\nE2')))
        assert [e.lines for e in entries] == [['E1'], ['E2']]

    def test_header_only_file(self):
        fmeta = FileMeta(header_size=4)
        assert list(EntrySegmenter(fmeta, 'f').entries(io.BytesIO(b'1\n2\n3\n'))) == []

    def test_empty_file(self):
        assert list(EntrySegmenter(FileMeta(), 'f').entries(io.BytesIO(b''))) == []

    def test_offset_tracks_all_bytes(self):
        data = 'h\nE1 ünïcode\nE2\n'.encode('utf-8')
        segmenter = EntrySegmenter(FileMeta(header_size=1), 'f')
        entries = list(segmenter.entries(io.BytesIO(data)))
        assert segmenter.offset == len(data)
        assert segmenter.line_count == 3
        assert entries[1].start_offset == len('h\nE1 ünïcode\n'.encode('utf-8'))

    def test_invalid_utf8_is_replaced(self):
        entries = list(EntrySegmenter(FileMeta(), 'f').entries(io.BytesIO(b'E1 \xff\n')))
        assert entries[0].lines == ['E1 �']
