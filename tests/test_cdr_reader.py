"""
Tests de la lecture des fichiers CDR
"""

import pandas as pd
import pytest

from cdr_analyzer.infrastructure.cdr_reader import CdrReader
from cdr_analyzer.models.call_record import REQUIRED_COLUMNS


def write_csv(path, rows, type_row=False):
    header = ['cdrRecordType', 'globalCallID_callId'] + REQUIRED_COLUMNS
    lines = [','.join(header)]
    if type_row:
        lines.append(','.join(['INTEGER', 'INTEGER'] + ['VARCHAR(50)'] * len(REQUIRED_COLUMNS)))
    for row in rows:
        lines.append(','.join(['1', '42'] + [str(row.get(col, '')) for col in REQUIRED_COLUMNS]))
    path.write_text('\n'.join(lines) + '\n', encoding='utf-8')
    return str(path)


class TestCdrReader:

    def test_reads_rows_as_text(self, tmp_path, make_row):
        path = write_csv(tmp_path / 'cdr.csv', [make_row(), make_row(duration='12')])

        df = CdrReader().read(path)

        assert len(df) == 2
        assert df.loc[1, 'duration'] == '12'
        assert df.loc[0, 'origNodeId'] == '1'

    def test_drops_cucm_type_row(self, tmp_path, make_row):
        path = write_csv(tmp_path / 'cdr.csv', [make_row()], type_row=True)

        df = CdrReader().read(path)

        assert len(df) == 1
        assert df.loc[0, 'origDeviceName'] == 'SEP0001'

    def test_empty_values_become_nan(self, tmp_path, make_row):
        path = write_csv(tmp_path / 'cdr.csv', [make_row(callingPartyUnicodeLoginUserID='')])

        df = CdrReader().read(path)

        assert pd.isna(df.loc[0, 'callingPartyUnicodeLoginUserID'])

    def test_missing_columns_raise(self, tmp_path):
        path = tmp_path / 'cdr.csv'
        path.write_text('origDeviceName,duration\nSEP1,10\n', encoding='utf-8')

        with pytest.raises(ValueError, match='dateTimeOrigination'):
            CdrReader().read(str(path))

    def test_header_only_file_is_empty(self, tmp_path):
        path = write_csv(tmp_path / 'cdr.csv', [])

        assert CdrReader().read(path).empty

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            CdrReader().read(str(tmp_path / 'absent.csv'))

    def test_custom_delimiter(self, tmp_path, make_row):
        path = tmp_path / 'cdr.csv'
        row = make_row()
        path.write_text(';'.join(REQUIRED_COLUMNS) + '\n' + ';'.join(str(row[c]) for c in REQUIRED_COLUMNS) + '\n',
                        encoding='utf-8')

        df = CdrReader(delimiter=';').read(str(path))

        assert df.loc[0, 'finalCalledPartyNumber'] == '2002'

    def test_iter_rows_yields_dicts(self, tmp_path, make_row):
        path = write_csv(tmp_path / 'cdr.csv', [make_row()])

        rows = list(CdrReader.iter_rows(CdrReader().read(path)))

        assert rows[0]['origDeviceName'] == 'SEP0001'

    def test_na_like_text_is_kept(self, tmp_path, make_row):
        path = write_csv(tmp_path / 'cdr.csv', [
            make_row(origDeviceName='NA', callingPartyUnicodeLoginUserID='None', callingPartyNumberPartition='NULL'),
        ])

        df = CdrReader().read(path)

        assert df.loc[0, 'origDeviceName'] == 'NA'
        assert df.loc[0, 'callingPartyUnicodeLoginUserID'] == 'None'
        assert df.loc[0, 'callingPartyNumberPartition'] == 'NULL'
