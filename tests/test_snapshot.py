"""
Tests for calibration file import/export.
"""

import json
from io import StringIO

import pandas as pd
import pytest

from colorimetry.core.data_structures import CalibrationCurve, CalibrationPoint
from colorimetry.core.exceptions import SnapshotParseError
from colorimetry.curves import export_snapshot, parse_snapshot, curve_to_csv, EXPORT_FILENAME

@pytest.fixture
def curve():
    return CalibrationCurve('manual', (
        CalibrationPoint(200.0, 10.0),
        CalibrationPoint(15.5, 3.25),
        CalibrationPoint(100.0, 7.0),
    ))


def test_export_format(curve):
    data = export_snapshot(curve)
    payload = json.loads(data.decode('utf-8'))

    assert payload == [
        {'hue': 200.0, 'pH': 10.0},
        {'hue': 15.5, 'pH': 3.25},
        {'hue': 100.0, 'pH': 7.0},
    ]
    assert b'\n  ' in data


def test_export_filename():
    assert EXPORT_FILENAME == 'ph_manual_calibration.json'


def test_export_then_parse_preserves_points(curve):
    parsed = parse_snapshot(export_snapshot(curve))
    assert parsed.to_records() == curve.to_records()
    assert parsed.source == 'manual'


def test_parse_ignores_extra_fields():
    data = b'[{"hue": 0, "pH": 1, "color": "red"}, {"hue": 20, "pH": 4, "note": null}]'
    parsed = parse_snapshot(data, source='default')

    assert parsed.source == 'default'
    assert parsed.to_records() == [{'hue': 0.0, 'pH': 1.0}, {'hue': 20.0, 'pH': 4.0}]


def test_parse_normalizes_values():
    parsed = parse_snapshot('[{"hue": 400, "pH": 20}, {"hue": "-90", "pH": "0.5"}]')
    assert parsed.to_records() == [{'hue': 40.0, 'pH': 14.0}, {'hue': 270.0, 'pH': 1.0}]


def test_parse_drops_malformed_entries():
    data = b'[{"hue": 10, "pH": 2}, {"hue": 10}, [1, 2], {"hue": "abc", "pH": 3}, {"hue": 50, "pH": NaN}]'
    parsed = parse_snapshot(data)

    assert parsed.to_records() == [{'hue': 10.0, 'pH': 2.0}]


def test_parse_accepts_byte_order_mark():
    parsed = parse_snapshot('\ufeff[{"hue": 10, "pH": 2}]'.encode('utf-8'))
    assert len(parsed) == 1


def test_parse_empty_array():
    assert len(parse_snapshot(b'[]')) == 0


@pytest.mark.parametrize("data", [
    b'',
    b'not json',
    b'{"hue": 10, "pH": 2}',
    b'42',
    b'\xff\xfe\x00',
    b'[{"hue": "x", "pH": 1}, {"pH": 3}]',
])
def test_parse_rejects_unusable_files(data):
    with pytest.raises(SnapshotParseError):
        parse_snapshot(data)


def test_parse_rejects_other_payload_types():
    with pytest.raises(SnapshotParseError):
        parse_snapshot(12345)


def test_csv_is_sorted_by_ph(curve):
    df = pd.read_csv(StringIO(curve_to_csv(curve)))

    assert list(df.columns) == ['hue', 'pH']
    assert df['pH'].tolist() == [3.25, 7.0, 10.0]
    assert df['hue'].tolist() == [15.5, 100.0, 200.0]


def test_format_points(curve):
    assert curve.format_points().splitlines() == [
        "pH 3.25  <-  hue 15.50 deg",
        "pH 7.00  <-  hue 100.00 deg",
        "pH 10.00  <-  hue 200.00 deg",
    ]
    assert CalibrationCurve('manual').format_points() == "No manual points yet."
