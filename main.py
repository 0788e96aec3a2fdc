import logging

import cv2
import numpy as np
import streamlit as st

from colorimetry import build_session, ArrayFrameSource, ValidationError, SnapshotParseError, StorageError
from colorimetry.core.data_structures import MANUAL_SOURCE
from colorimetry.curves import EXPORT_FILENAME, curve_to_csv
from colorimetry.data import draw_roi

# Page configuration
st.set_page_config(
    page_title="pH Colorimeter",
    page_icon="🧪",
    layout="wide",
    initial_sidebar_state="expanded"
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(message)s')


def get_session():
    """One frame source and estimation session per browser session."""
    if 'ph_session' not in st.session_state:
        source = ArrayFrameSource()
        session = build_session(source)
        session.start()
        st.session_state.ph_source = source
        st.session_state.ph_session = session
    return st.session_state.ph_source, st.session_state.ph_session


def decode_image(content: bytes):
    """Decode an uploaded/captured image into an OpenCV BGR frame."""
    buf = np.frombuffer(content, dtype=np.uint8)
    return cv2.imdecode(buf, cv2.IMREAD_COLOR)


source, session = get_session()
calibration = session.calibration

st.title("🧪 pH Colorimeter")
st.markdown("### Estimate pH from the color of an indicator in the center of the picture")

# --- Sidebar: sampling and calibration settings ---
with st.sidebar:
    st.header("Sampling")
    session.roi_size = st.slider(
        "ROI size (px)", session.config.roi_min, session.config.roi_max,
        value=session.roi_size, step=session.config.roi_step
    )
    session.white_balance = st.checkbox("White balance (gray world)", value=session.white_balance)

    st.header("Calibration")
    sources = calibration.sources()
    requested = st.selectbox("Active curve", sources, index=sources.index(calibration.active_mode))
    if requested != calibration.active_mode:
        applied = calibration.set_mode(requested)
        if applied != requested:
            st.warning(f"'{requested}' needs at least 2 points. Using '{applied}'.")
    st.caption(f"Active: {calibration.active_mode.title()}")

# --- Image input ---
col1, col2 = st.columns(2)

with col1:
    picture = st.camera_input("Take a picture")
    uploaded = st.file_uploader("...or upload an image", type=["png", "jpg", "jpeg", "bmp"])
    image_file = picture or uploaded

result = None
if image_file is not None:
    frame = decode_image(image_file.getvalue())
    if frame is None:
        st.error("Could not decode the image.")
    else:
        source.set_bgr_frame(frame)
        result = session.tick()

with col2:
    if result is None:
        st.info("Take or upload a picture to get an estimate.")
    else:
        preview = draw_roi(source.current_frame(), session.current_roi(), color=(0, 255, 0, 255))
        st.image(preview, caption="Sampled region", use_container_width=True)
        if result.is_conclusive:
            st.metric("pH", f"{result.ph:.2f}")
            st.progress(min(1.0, result.ph / 14))
        else:
            st.metric("pH", "--")
        st.caption(result.debug_string())

st.markdown("---")

# --- Manual calibration ---
st.markdown("## 🎯 Manual Calibration")

cap_col, list_col = st.columns(2)

with cap_col:
    known_ph = st.number_input("Known pH of this sample", min_value=0.0, max_value=15.0, value=7.0, step=0.1)
    if st.button("Capture calibration point", disabled=not source.has_frame):
        try:
            point = session.capture_calibration_point(known_ph)
            st.success(f"Captured pH {point.ph:.2f} at hue {point.hue_deg:.1f}°")
        except ValidationError as e:
            st.error(str(e))
        except StorageError as e:
            st.error(f"Failed to save calibration: {e}")

    imported = st.file_uploader("Import calibration (JSON)", type=["json"], key="calib_import")
    if imported is not None and st.session_state.get('last_import') != imported.file_id:
        st.session_state.last_import = imported.file_id
        try:
            curve = calibration.import_snapshot(imported.getvalue())
            st.success(f"Imported {len(curve)} points")
        except (SnapshotParseError, StorageError) as e:
            st.error(f"Import failed: {e}")

with list_col:
    manual = calibration.manual_curve
    if len(manual) == 0:
        st.write("No manual points yet.")
    else:
        st.dataframe(manual.to_frame(), use_container_width=True, hide_index=True)

    st.download_button(
        "Export JSON", calibration.export_snapshot(),
        file_name=EXPORT_FILENAME, mime="application/json"
    )
    st.download_button(
        "Export CSV", curve_to_csv(manual),
        file_name="ph_manual_calibration.csv", mime="text/csv"
    )
    if st.button("Clear all manual points"):
        try:
            calibration.reset_manual()
            st.rerun()
        except StorageError as e:
            st.error(f"Reset failed: {e}")
    if calibration.active_mode != MANUAL_SOURCE and len(manual) >= 2:
        st.caption("Select 'manual' in the sidebar to use these points.")
