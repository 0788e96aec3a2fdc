"""
Tests for the estimation session tick loop and calibration capture.
"""

import numpy as np
import pytest

from colorimetry import build_session
from colorimetry.core.config import EstimationConfig
from colorimetry.core.data_structures import DEFAULT_SOURCE, MANUAL_SOURCE
from colorimetry.core.exceptions import ValidationError
from colorimetry.core.interfaces import IFrameSource
from colorimetry.curves import CalibrationService
from colorimetry.data import ArrayFrameSource, MemoryKeyValueStore, DictAssetSource
from colorimetry.session import EstimationSession, SessionState
from conftest import hue_rgb, solid_frame


class BrokenFrameSource(IFrameSource):
    def frame_size(self):
        return 160, 120

    def read_region(self, x, y, width, height):
        raise RuntimeError("camera unplugged")


@pytest.fixture
def session(frame_source, service, config):
    return EstimationSession(frame_source, service, config)


def test_state_machine(session):
    assert session.state is SessionState.IDLE
    assert session.toggle() is SessionState.IDLE

    session.start()
    assert session.is_running
    assert session.toggle() is SessionState.PAUSED
    assert session.toggle() is SessionState.RUNNING

    session.start()
    assert session.state is SessionState.RUNNING


def test_tick_only_while_running(session):
    assert session.tick() is None

    session.start()
    assert session.tick() is not None

    session.toggle()
    assert session.tick() is None


def test_tick_reports_default_curve_estimate(session):
    session.start()
    result = session.tick()

    assert result.is_conclusive
    assert result.ph == pytest.approx(7.0, abs=0.05)
    assert result.mean_hue_deg == pytest.approx(110.0, abs=1.0)
    assert result.sample_count == 64 * 64
    assert result.source == DEFAULT_SOURCE
    assert session.last_result is result
    assert result.summary_string() == "pH ~ 7.00"


def test_gray_frame_is_inconclusive(session, frame_source):
    frame_source.set_frame(solid_frame([128, 128, 128]))
    session.start()
    result = session.tick()

    assert not result.is_conclusive
    assert result.mean_hue_deg is None
    assert result.sample_count == 0
    assert result.to_dict() == {'pH': None, 'meanHueDegrees': None, 'sampleCount': 0}
    assert result.summary_string() == "pH: --"
    assert result.debug_string() == "Hue: -- (too few pixels)"


def test_small_colored_patch_is_not_reported(session, frame_source):
    frame = solid_frame([128, 128, 128])
    frame[58:62, 78:82] = hue_rgb(200)
    frame_source.set_frame(frame)

    result = session.evaluate()

    assert not result.is_conclusive
    assert result.sample_count == 16


def test_missing_frame_is_inconclusive(service, config):
    session = EstimationSession(ArrayFrameSource(), service, config)
    session.start()

    result = session.tick()
    assert not result.is_conclusive
    assert result.sample_count == 0


def test_frame_source_errors_do_not_escape(service, config):
    session = EstimationSession(BrokenFrameSource(), service, config)
    session.start()

    assert not session.tick().is_conclusive


def test_listeners_receive_results(session):
    received = []

    def broken(result):
        raise RuntimeError("listener bug")

    session.add_listener(broken)
    session.add_listener(received.append)
    session.start()
    result = session.tick()

    assert received == [result]


def test_roi_size_is_clamped(session, config):
    assert session.roi_size == 64

    session.roi_size = 500
    assert session.roi_size == config.roi_max == 256
    session.roi_size = 10
    assert session.roi_size == config.roi_min == 24


def test_grow_and_shrink_roi(session):
    assert session.grow_roi() == 80
    assert session.shrink_roi() == 64

    for _ in range(20):
        session.shrink_roi()
    assert session.roi_size == 24

    for _ in range(20):
        session.grow_roi()
    assert session.roi_size == 256


def test_current_roi_is_centered(session):
    assert session.current_roi() == (48, 28, 64, 64)

    session.roi_size = 256
    assert session.current_roi() == (0, 0, 160, 120)


def test_white_balance_toggle(session, frame_source):
    frame_source.set_frame(solid_frame(hue_rgb(30, saturation=0.5)))
    session.white_balance = True

    # A uniform pastel frame turns gray under gray-world balancing
    assert not session.evaluate().is_conclusive

    session.white_balance = False
    assert session.evaluate().is_conclusive


def test_capture_calibration_points(session, service, frame_source):
    point = session.capture_calibration_point(7.0)

    assert point.ph == 7.0
    assert point.hue_deg == pytest.approx(110.0, abs=1.0)
    # One point is not enough to switch modes
    assert service.active_mode == DEFAULT_SOURCE

    frame_source.set_frame(solid_frame(hue_rgb(210)))
    session.capture_calibration_point(11.0)
    assert service.active_mode == MANUAL_SOURCE

    frame_source.set_frame(solid_frame(hue_rgb(180)))
    session.start()
    result = session.tick()
    assert result.source == MANUAL_SOURCE
    assert result.ph == pytest.approx(9.8, abs=0.05)


@pytest.mark.parametrize("ph", [0.5, 15.0, "seven"])
def test_capture_rejects_bad_ph(session, service, ph):
    with pytest.raises(ValidationError):
        session.capture_calibration_point(ph)
    assert len(service.manual_curve) == 0


def test_capture_rejects_weak_sample(session, service, frame_source):
    frame_source.set_frame(solid_frame([60, 60, 60]))

    with pytest.raises(ValidationError, match="Not enough valid pixels"):
        session.capture_calibration_point(7.0)
    assert len(service.manual_curve) == 0


def test_capture_without_frame(service, config):
    session = EstimationSession(ArrayFrameSource(), service, config)

    with pytest.raises(ValidationError):
        session.capture_calibration_point(7.0)


def test_capture_when_source_fails(service, config):
    session = EstimationSession(BrokenFrameSource(), service, config)

    with pytest.raises(ValidationError, match="No frame"):
        session.capture_calibration_point(7.0)


def test_output_is_clamped_to_config_range(frame_source, store):
    config = EstimationConfig(ph_max=12.0)
    service = CalibrationService(store, config=config)
    service.replace_manual([{"hue": 100, "pH": 14}, {"hue": 120, "pH": 14}])
    service.set_mode(MANUAL_SOURCE)
    session = EstimationSession(frame_source, service, config)

    assert session.evaluate().ph == 12.0


def test_build_session_loads_bundled_assets():
    session = build_session(ArrayFrameSource(solid_frame(hue_rgb(110))), storage=MemoryKeyValueStore())
    calibration = session.calibration

    assert calibration.sources() == ['default', 'manual', 'red_cabbage']
    assert len(calibration.normalized_curve('default')) == 7
    assert calibration.set_mode('red_cabbage') == 'red_cabbage'

    session.start()
    result = session.tick()
    assert result.source == 'red_cabbage'
    assert result.ph == pytest.approx(12.0, abs=0.05)


def test_build_session_with_failing_assets():
    session = build_session(
        ArrayFrameSource(solid_frame(hue_rgb(110))),
        storage=MemoryKeyValueStore(),
        asset_source=DictAssetSource({'default': {'not': 'a list'}}),
    )
    calibration = session.calibration

    # Default falls back to the built-in curve; the preset stays empty
    assert len(calibration.normalized_curve('default')) == 7
    assert len(calibration.normalized_curve('red_cabbage')) == 0
    assert calibration.set_mode('red_cabbage') == DEFAULT_SOURCE


def test_frame_with_alpha_channel(service, config):
    frame = np.zeros((120, 160, 4), dtype=np.uint8)
    frame[..., :3] = hue_rgb(110)
    frame[..., 3] = 0
    session = EstimationSession(ArrayFrameSource(frame), service, config)

    # Fully transparent frame has no valid pixels
    assert not session.evaluate().is_conclusive


def test_capture_uses_configured_range(frame_source, store):
    config = EstimationConfig(ph_max=12.0)
    service = CalibrationService(store, config=config)
    session = EstimationSession(frame_source, service, config)

    with pytest.raises(ValidationError, match=r"\[1,12\]"):
        session.capture_calibration_point(13.0)
    assert len(service.manual_curve) == 0

    assert session.capture_calibration_point(12.0).ph == 12.0


def test_mapper_uses_configured_neutral_ph(frame_source, service):
    config = EstimationConfig(neutral_ph=6.0)
    session = EstimationSession(frame_source, service, config)

    assert session.mapper(0.0, []) == 6.0
