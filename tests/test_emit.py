"""Tests for emit sinks."""

import io
import os

import pytest

from mortimer.emit import (
    Emitter,
    format_path,
    out_dir_emitters,
    parse_parts,
    parse_types,
)
from mortimer.extractor import Field, PartKind


def make_field(part=PartKind.NAME, **kwargs):
    values = dict(
        timestamp='2016-04-14T16:10:09.463447',
        module='',
        level='WARNING',
        file_label='node1/memcached.log',
        offset_byte=96,
        offset_line=5,
        part=part,
    )
    values.update(kwargs)
    return Field(**values)


class TestParsing:
    """Part and type option parsing."""

    def test_parse_parts(self):
        assert parse_parts('NAME') == {PartKind.NAME}
        assert parse_parts('full, mids,ends') == {PartKind.FULL, PartKind.MIDS, PartKind.ENDS}

    def test_parse_part_aliases(self):
        assert parse_parts('VALS,STRS,TAIL') == {PartKind.NAME, PartKind.MIDS, PartKind.ENDS}

    def test_unknown_part(self):
        with pytest.raises(ValueError, match='unknown part: BOGUS'):
            parse_parts('NAME,bogus')

    def test_parse_types(self):
        assert parse_types('int,String') == {'INT', 'STRING'}
        assert parse_types('') == frozenset()

    def test_unknown_type(self):
        with pytest.raises(ValueError, match='unknown value type: BOOL'):
            parse_types('INT,BOOL')

    def test_format_path(self):
        assert format_path(()) == '[]'
        assert format_path(('stats', 'ops')) == '[stats ops]'


class TestEmitter:
    """Filtering and line format."""

    def test_name_field(self):
        emitter = Emitter(frozenset({PartKind.NAME}), frozenset({'INT'}), io.StringIO())
        f = make_field(name='conn_count', value_kind='INT', value='5')
        expected = '  2016-04-14T16:10:09.463447 WARNING node1/memcached.log 96:5  [] conn_count = INT 5'
        assert emitter.format(f) == expected

    def test_part_label_with_several_parts(self):
        emitter = Emitter(frozenset({PartKind.NAME, PartKind.MIDS}), frozenset({'INT'}), io.StringIO())
        f = make_field(module='ns_server', name='uptime', name_path=('stats',), value_kind='INT', value='42')
        assert emitter.format(f).endswith('96:5 NAME ns_server [stats] uptime = INT 42')

    def test_quoted_value(self):
        emitter = Emitter(frozenset({PartKind.NAME}), frozenset({'STRING'}), io.StringIO())
        f = make_field(name='bucket', value='say "hi"', quoted=True)
        assert emitter.format(f).endswith('[] bucket = STRING "say \\"hi\\""')

    def test_text_field_has_no_name(self):
        emitter = Emitter(frozenset({PartKind.MIDS}), frozenset({'STRING'}), io.StringIO())
        f = make_field(part=PartKind.MIDS, value='conn_count =', quoted=True)
        assert emitter.format(f).endswith('[] = STRING "conn_count ="')

    def test_full_field(self):
        emitter = Emitter(frozenset({PartKind.FULL}), frozenset({'INT'}), io.StringIO())
        f = make_field(part=PartKind.FULL, value='conn_count=5')
        assert emitter.accepts(f)
        assert emitter.format(f).endswith('96:5  conn_count=5')

    def test_filtering(self):
        stream = io.StringIO()
        emitter = Emitter(frozenset({PartKind.NAME}), frozenset({'INT'}), stream)

        assert emitter.emit(make_field(name='a', value_kind='INT', value='1'))
        assert not emitter.emit(make_field(name='b', value_kind='STRING', value='x'))
        assert not emitter.emit(make_field(part=PartKind.ENDS, value='tail'))

        assert emitter.count == 1
        assert stream.getvalue().count('\n') == 1

    def test_close_keeps_borrowed_stream_open(self):
        stream = io.StringIO()
        Emitter(frozenset({PartKind.NAME}), frozenset({'INT'}), stream).close()
        assert not stream.closed

    def test_close_owned_stream(self):
        stream = io.StringIO()
        Emitter(frozenset({PartKind.NAME}), frozenset({'INT'}), stream, owns_stream=True).close()
        assert stream.closed

    def test_close_logs_sink_name(self, caplog):
        emitter = Emitter(frozenset({PartKind.NAME}), frozenset({'INT'}), io.StringIO(), name='ints.log')
        emitter.emit(make_field(name='a', value_kind='INT', value='1'))

        with caplog.at_level('DEBUG', logger='mortimer.emit'):
            emitter.close()

        assert 'Closing ints.log: 1 fields written' in caplog.text


class TestOutDir:
    """Per-purpose file sinks."""

    def test_out_dir_emitters(self, tmp_path):
        out_dir = str(tmp_path / 'out')
        full, ints = out_dir_emitters(out_dir)

        for sink in (full, ints):
            sink.emit(make_field(part=PartKind.FULL, value='conn_count=5'))
            sink.emit(make_field(name='conn_count', value_kind='INT', value='5'))
            sink.emit(make_field(name='bucket', value='default', quoted=True))
            sink.close()

        with open(os.path.join(out_dir, 'full.log')) as f:
            assert f.read().splitlines() == [
                '  2016-04-14T16:10:09.463447 WARNING node1/memcached.log 96:5  conn_count=5'
            ]
        with open(os.path.join(out_dir, 'ints.log')) as f:
            assert f.read().splitlines() == [
                '  2016-04-14T16:10:09.463447 WARNING node1/memcached.log 96:5  [] conn_count = INT 5'
            ]
