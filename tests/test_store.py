"""
Tests for the calibration service (curves, active mode, persistence).
"""

import json

import pytest

from colorimetry.core.config import EstimationConfig
from colorimetry.core.data_structures import DEFAULT_SOURCE, MANUAL_SOURCE
from colorimetry.core.exceptions import (
    ValidationError, StorageError, SnapshotParseError, UnknownCurveError,
)
from colorimetry.curves import CalibrationService, DEFAULT_CALIBRATION
from colorimetry.data import MemoryKeyValueStore


class FailingStore(MemoryKeyValueStore):
    """Store whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail = False

    def set(self, key, data):
        if self.fail:
            raise StorageError("disk full")
        super().set(key, data)


class OSErrorStore(MemoryKeyValueStore):
    def set(self, key, data):
        raise OSError("read-only file system")


def stored_records(store, config):
    return json.loads(store.get(config.storage_key).decode('utf-8'))


def test_initial_state(service):
    assert service.active_mode == DEFAULT_SOURCE
    assert service.sources() == ['default', 'manual', 'red_cabbage']
    assert service.preset_names() == ['red_cabbage']
    assert len(service.manual_curve) == 0
    assert len(service.active_curve()) == len(DEFAULT_CALIBRATION)


@pytest.mark.parametrize("ph", [15, 0, 0.99, 14.01, "abc", None])
def test_add_manual_point_rejects_bad_ph(service, ph):
    with pytest.raises(ValidationError):
        service.add_manual_point(120.0, ph)
    assert len(service.manual_curve) == 0


def test_add_manual_point_accepts_boundaries(service):
    service.add_manual_point(10.0, 1)
    service.add_manual_point(20.0, 14)
    point = service.add_manual_point(30.0, 7)

    assert point.ph == 7.0
    assert [p.ph for p in service.manual_curve] == [1.0, 14.0, 7.0]


def test_add_manual_point_normalizes_hue(service):
    point = service.add_manual_point(370.0, 5.0)
    assert point.hue_deg == pytest.approx(10.0)

    point = service.add_manual_point(-30.0, 5.0)
    assert point.hue_deg == pytest.approx(330.0)


def test_manual_points_are_persisted(service, store, config):
    service.add_manual_point(40.0, 5.5)

    assert stored_records(store, config) == [{'hue': 40.0, 'pH': 5.5}]


def test_restore_from_storage(store, config):
    first = CalibrationService(store, config=config)
    first.add_manual_point(40.0, 5.5)
    first.add_manual_point(200.0, 10.0)

    second = CalibrationService(store, config=config)
    assert second.manual_curve.to_records() == [
        {'hue': 40.0, 'pH': 5.5},
        {'hue': 200.0, 'pH': 10.0},
    ]
    # Restored points do not switch the mode on their own
    assert second.active_mode == DEFAULT_SOURCE


@pytest.mark.parametrize("payload", [b"{not json", b"\xff\xfe", b'{"hue": 1}', b'"text"'])
def test_corrupt_storage_restores_empty(config, payload):
    store = MemoryKeyValueStore({config.storage_key: payload})
    service = CalibrationService(store, config=config)

    assert len(service.manual_curve) == 0


def test_restore_drops_malformed_records(config):
    payload = json.dumps([{'hue': 10, 'pH': 3}, {'hue': 'x', 'pH': 3}, {'pH': 4}]).encode()
    service = CalibrationService(MemoryKeyValueStore({config.storage_key: payload}), config=config)

    assert service.manual_curve.to_records() == [{'hue': 10.0, 'pH': 3.0}]


def test_set_mode_falls_back_without_enough_points(service):
    assert service.set_mode(MANUAL_SOURCE) == DEFAULT_SOURCE

    service.add_manual_point(10.0, 2.0)
    assert service.set_mode(MANUAL_SOURCE) == DEFAULT_SOURCE

    service.add_manual_point(100.0, 8.0)
    assert service.set_mode(MANUAL_SOURCE) == MANUAL_SOURCE
    assert service.active_curve().source == MANUAL_SOURCE


def test_set_mode_unknown_source(service):
    with pytest.raises(UnknownCurveError):
        service.set_mode('litmus')
    with pytest.raises(KeyError):
        service.normalized_curve('litmus')


def test_preset_is_empty_until_loaded(service):
    assert service.set_mode('red_cabbage') == DEFAULT_SOURCE

    service.replace_preset('red_cabbage', [{'hue': 350, 'pH': 2}, {'hue': 55, 'pH': 13}])
    assert service.set_mode('red_cabbage') == 'red_cabbage'
    assert len(service.active_curve()) == 2


def test_storage_failure_leaves_state_unchanged(config):
    store = FailingStore()
    service = CalibrationService(store, config=config)
    service.add_manual_point(10.0, 2.0)
    service.add_manual_point(100.0, 8.0)
    service.set_mode(MANUAL_SOURCE)

    store.fail = True
    with pytest.raises(StorageError):
        service.add_manual_point(200.0, 11.0)
    with pytest.raises(StorageError):
        service.reset_manual()
    with pytest.raises(StorageError):
        service.remove_manual_point(0)

    assert len(service.manual_curve) == 2
    assert service.active_mode == MANUAL_SOURCE
    assert len(stored_records(store, config)) == 2


def test_os_error_is_reported_as_storage_error(config):
    service = CalibrationService(OSErrorStore(), config=config)

    with pytest.raises(StorageError):
        service.add_manual_point(10.0, 2.0)
    assert len(service.manual_curve) == 0


def test_remove_manual_point(service):
    service.add_manual_point(10.0, 2.0)
    service.add_manual_point(100.0, 8.0)
    service.add_manual_point(200.0, 11.0)

    removed = service.remove_manual_point(1)

    assert removed.ph == 8.0
    assert [p.ph for p in service.manual_curve] == [2.0, 11.0]
    with pytest.raises(IndexError):
        service.remove_manual_point(5)


def test_reset_falls_back_to_default(service, store, config):
    service.add_manual_point(10.0, 2.0)
    service.add_manual_point(100.0, 8.0)
    service.set_mode(MANUAL_SOURCE)

    service.reset_manual()

    assert len(service.manual_curve) == 0
    assert service.active_mode == DEFAULT_SOURCE
    assert stored_records(store, config) == []


def test_removing_below_two_points_falls_back(service):
    service.add_manual_point(10.0, 2.0)
    service.add_manual_point(100.0, 8.0)
    service.set_mode(MANUAL_SOURCE)

    service.remove_manual_point(0)

    assert service.active_mode == DEFAULT_SOURCE
    assert service.active_curve().source == DEFAULT_SOURCE


def test_normalized_curve_is_a_copy(service):
    service.add_manual_point(10.0, 2.0)
    curve = service.manual_curve
    curve.points = ()

    assert len(service.manual_curve) == 1


def test_replace_manual_drops_malformed(service):
    curve = service.replace_manual([
        {'hue': 10, 'pH': 2},
        {'hue': 'bad', 'pH': 5},
        {'hue': 120, 'pH': '8.5'},
        'not an object',
    ])
    assert curve.to_records() == [{'hue': 10.0, 'pH': 2.0}, {'hue': 120.0, 'pH': 8.5}]


def test_replace_default_keeps_builtin_when_empty(service):
    curve = service.replace_preset(DEFAULT_SOURCE, [])
    assert len(curve) == len(DEFAULT_CALIBRATION)

    curve = service.replace_preset(DEFAULT_SOURCE, [{'hue': 'x'}])
    assert len(curve) == len(DEFAULT_CALIBRATION)


def test_replace_default_with_asset(service):
    service.replace_preset(DEFAULT_SOURCE, [{'hue': 0, 'pH': 2}, {'hue': 180, 'pH': 12}])
    assert service.active_curve().ph_values().tolist() == [2.0, 12.0]


def test_reserved_preset_names(store):
    with pytest.raises(ValueError):
        CalibrationService(store, presets=['manual'])


def test_export_and_import_snapshot(service, store, config):
    service.add_manual_point(10.0, 2.0)
    service.add_manual_point(100.0, 8.0)
    data = service.export_snapshot()

    other = CalibrationService(MemoryKeyValueStore(), config=config)
    curve = other.import_snapshot(data)

    assert sorted(curve.to_records(), key=lambda r: r['hue']) == sorted(
        service.manual_curve.to_records(), key=lambda r: r['hue']
    )
    assert other.active_mode == MANUAL_SOURCE


def test_import_too_few_points_stays_on_default(service):
    curve = service.import_snapshot(b'[{"hue": 45, "pH": 6}]')

    assert len(curve) == 1
    assert service.active_mode == DEFAULT_SOURCE


@pytest.mark.parametrize("data", [b"not json", b'{"hue": 1, "pH": 2}', b'[{"hue": "x"}, 3]'])
def test_failed_import_changes_nothing(service, store, config, data):
    service.add_manual_point(10.0, 2.0)

    with pytest.raises(SnapshotParseError):
        service.import_snapshot(data)

    assert service.manual_curve.to_records() == [{'hue': 10.0, 'pH': 2.0}]
    assert stored_records(store, config) == [{'hue': 10.0, 'pH': 2.0}]


def test_reload_manual(service, store, config):
    store.set(config.storage_key, b'[{"hue": 10, "pH": 2}, {"hue": 90, "pH": 7}]')

    assert service.reload_manual() == MANUAL_SOURCE
    assert len(service.manual_curve) == 2


def test_persist_writes_current_curve(service, store, config):
    service.add_manual_point(10.0, 2.0)
    store.set(config.storage_key, b'[]')

    service.persist()

    assert stored_records(store, config) == [{'hue': 10.0, 'pH': 2.0}]


def test_add_manual_point_uses_configured_range(store):
    config = EstimationConfig(ph_min=2.0, ph_max=12.0)
    service = CalibrationService(store, config=config)

    with pytest.raises(ValidationError):
        service.add_manual_point(40.0, 13.0)
    with pytest.raises(ValidationError):
        service.add_manual_point(40.0, 1.5)

    assert service.add_manual_point(40.0, 12.0).ph == 12.0
    assert len(service.manual_curve) == 1
