"""Tests for the Pydantic models."""

import json

from mortimer.dictionary import INT, STRING, Dictionary
from mortimer.models import DictEntryModel, DictionarySnapshot, HistogramModel, ProgressResponse


def sample_dictionary():
    d = Dictionary()
    d.record(INT, 'conn_count', '5')
    d.record(INT, 'conn_count', '700')
    d.record(STRING, 'bucket', 'default')
    d.record(STRING, 'bucket', 'default')
    d.record(STRING, 'bucket', 'beer')
    return d


class TestHistogramModel:
    def test_from_histogram(self):
        d = sample_dictionary()
        model = HistogramModel.from_histogram(d['conn_count'].histogram)
        assert model.num_buckets == 20
        assert model.first_width == 10
        assert model.growth == 3.0
        assert sum(model.counts) == 2
        assert model.min_value == 5
        assert model.max_value == 700

    def test_to_histogram(self):
        h = sample_dictionary()['conn_count'].histogram
        assert HistogramModel.from_histogram(h).to_histogram() == h


class TestDictEntryModel:
    """Tests for DictEntryModel."""

    def test_int_entry(self):
        model = DictEntryModel.from_entry(sample_dictionary()['conn_count'])
        assert model.kind == 'INT'
        assert model.seen == 2
        assert model.total == 705
        assert model.vals is None
        assert model.histogram is not None

    def test_string_entry(self):
        model = DictEntryModel.from_entry(sample_dictionary()['bucket'])
        assert model.vals == {'default': 2, 'beer': 1}
        assert model.histogram is None

    def test_to_entry(self):
        entry = DictEntryModel.from_entry(sample_dictionary()['bucket']).to_entry()
        entry.vals['new'] += 1
        assert entry.vals['new'] == 1
        assert entry.vals['default'] == 2


class TestDictionarySnapshot:
    """Tests for DictionarySnapshot serialization."""

    def test_json_omits_empty_fields(self):
        snapshot = DictionarySnapshot.from_dictionary(sample_dictionary(), '2016-04-14T16:10:09.4', None)
        data = json.loads(snapshot.to_json())

        assert data['min_ts'] == '2016-04-14T16:10:09.4'
        assert 'max_ts' not in data
        assert list(data['dictionary']) == ['bucket', 'conn_count']
        assert 'vals' not in data['dictionary']['conn_count']
        assert 'histogram' not in data['dictionary']['bucket']

    def test_json_round_trip(self):
        snapshot = DictionarySnapshot.from_dictionary(sample_dictionary(), 'a', 'b')
        loaded = DictionarySnapshot.model_validate_json(snapshot.to_json())
        d = loaded.to_dictionary()
        assert d['conn_count'].seen == 2
        assert d['conn_count'].histogram == sample_dictionary()['conn_count'].histogram
        assert dict(d['bucket'].vals) == {'default': 2, 'beer': 1}

    def test_to_cli(self):
        snapshot = DictionarySnapshot.from_dictionary(sample_dictionary(), 'a', 'b')
        text = snapshot.to_cli(top=1)
        lines = text.splitlines()
        assert lines[0] == 'Dictionary'
        assert 'Time range: a .. b' in lines
        assert 'Names: 2' in lines
        # Ordered by seen count
        assert lines.index('bucket STRING seen=3') < lines.index('conn_count INT seen=2 total=705 min=5 max=700')
        assert '           2  default' in lines
        assert not any(line.endswith('beer') for line in lines)

    def test_to_cli_colorized(self):
        snapshot = DictionarySnapshot.from_dictionary(sample_dictionary())
        assert '\033[36mbucket\033[0m' in snapshot.to_cli(colorize=True)


class TestProgressResponse:
    def test_defaults(self):
        progress = ProgressResponse()
        assert not progress.emit_done
        assert progress.emit_progress == 0
        assert progress.file_sizes == {}
