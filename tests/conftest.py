import pytest

from cdr_analyzer.models.call_record import CallRecord


@pytest.fixture
def make_row():
    """Fabrique de lignes CDR brutes avec des valeurs par défaut cohérentes."""
    def _make_row(**overrides):
        row = {
            'origDeviceName': 'SEP0001',
            'destDeviceName': 'SEP0002',
            'origNodeId': '1',
            'destNodeId': '1',
            'callingPartyUnicodeLoginUserID': 'alice',
            'finalCalledPartyUnicodeLoginUserID': 'bob',
            'callingPartyNumberPartition': 'PT_INTERNAL',
            'originalCalledPartyNumberPartition': 'PT_CALLED',
            'originalCalledPartyNumber': '2001',
            'finalCalledPartyNumber': '2002',
            'duration': '30',
            'dateTimeOrigination': '1700000000',
        }
        row.update(overrides)
        return row
    return _make_row


@pytest.fixture
def make_record(make_row):
    """Fabrique de CallRecord à partir de lignes brutes."""
    def _make_record(**overrides):
        return CallRecord.from_row(make_row(**overrides))
    return _make_record
