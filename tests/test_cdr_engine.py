"""
Tests du moteur d'agrégation (trois vues)
"""

import logging

import pytest

from cdr_analyzer.models.report import NO_DATA
from cdr_analyzer.services import cdr_engine
from cdr_analyzer.services.cdr_engine import CdrAggregationEngine


@pytest.fixture
def sample_rows(make_row):
    return [
        make_row(origDeviceName='D1', originalCalledPartyNumber='2001', destDeviceName='P1',
                 finalCalledPartyNumber='2001', duration='30'),
        make_row(origDeviceName='D1', originalCalledPartyNumber='2002', destDeviceName='P1',
                 finalCalledPartyNumber='2002', duration='45'),
        make_row(origDeviceName='D2', origNodeId='A', destNodeId='B', originalCalledPartyNumber='2001',
                 destDeviceName='P2', finalCalledPartyNumber='2001', duration='600'),
        make_row(origDeviceName='D3', originalCalledPartyNumber='2003', destDeviceName='P1',
                 finalCalledPartyNumber='2001', duration='5'),
    ]


class TestEngineViews:

    def test_device_analysis(self, sample_rows):
        table = CdrAggregationEngine.from_rows(sample_rows).device_analysis()

        assert table.name == 'Device Analysis'
        assert table.color == 'Green'
        assert table.header_rows == 2
        assert table.columns[1] == 'Device'
        assert [row.key for row in table.rows] == ['D1', 'D2', 'D3']
        assert table.rows[0].outbound_calls == 2
        assert table.rows[0].total_duration == '01:15'
        assert table.rows[1].inbound_calls == 1

    def test_phone_number_analysis(self, sample_rows):
        table = CdrAggregationEngine.from_rows(sample_rows).phone_number_analysis()

        assert table.name == 'Phone Number Analysis'
        assert table.color == 'Purple'
        assert table.header_rows == 1
        assert table.columns[1] == 'Phone Number'
        assert [row.key for row in table.rows] == ['2001', '2002', '2003']
        assert table.rows[0].total_calls == 2

    def test_device_to_phone_mapping(self, sample_rows):
        table = CdrAggregationEngine.from_rows(sample_rows).device_to_phone_mapping()

        assert table.name == 'Device to Phone Mapping'
        assert table.color == 'Blue'
        assert [(row.device, row.count, row.numbers) for row in table.rows] == [
            ('P1', 2, '#2001, #2002'),
            ('P2', 1, '#2001'),
        ]

    def test_empty_input_returns_sentinel_for_every_view(self):
        engine = CdrAggregationEngine([])

        tables = engine.run_all()

        assert [table.rows for table in tables] == [NO_DATA, NO_DATA, NO_DATA]
        assert not any(table.has_data for table in tables)
        assert [table.row_list() for table in tables] == [[], [], []]


class TestEngineRun:

    def test_parallel_matches_sequential(self, sample_rows):
        engine = CdrAggregationEngine.from_rows(sample_rows)

        assert engine.run_all(parallel=True) == engine.run_all(parallel=False)

    def test_run_all_order(self, sample_rows):
        names = [table.name for table in CdrAggregationEngine.from_rows(sample_rows).run_all()]

        assert names == ['Device Analysis', 'Phone Number Analysis', 'Device to Phone Mapping']

    def test_worker_failure_aborts_parallel_run(self, sample_rows, monkeypatch):
        def failing(records):
            raise RuntimeError("boom")

        monkeypatch.setattr(cdr_engine, 'aggregate_by_phone_number', failing)
        engine = CdrAggregationEngine.from_rows(sample_rows)

        with pytest.raises(RuntimeError, match="boom"):
            engine.run_all(parallel=True)


class TestMalformedRecords:

    def test_bad_rows_are_skipped_and_logged(self, make_row, caplog):
        rows = [
            make_row(origDeviceName='D1'),
            make_row(origDeviceName='D1', duration='-3'),
            make_row(origDeviceName='D1', dateTimeOrigination='not-a-date'),
        ]

        with caplog.at_level(logging.WARNING, logger='cdr_analyzer.services.cdr_engine'):
            engine = CdrAggregationEngine.from_rows(rows)

        assert len(engine.records) == 1
        assert engine.skipped_records == 2
        assert '#2' in caplog.text and 'duration' in caplog.text and "'-3'" in caplog.text
        assert '#3' in caplog.text and 'dateTimeOrigination' in caplog.text
        assert engine.device_analysis().rows[0].total_calls == 1

    def test_only_bad_rows_behave_like_empty_input(self, make_row):
        engine = CdrAggregationEngine.from_rows([make_row(duration='x')])

        assert engine.device_analysis().rows is NO_DATA
