"""
Session module: tick-driven estimation loop and calibration capture.
"""

from .estimation_session import EstimationSession, SessionState

__all__ = [
    'EstimationSession',
    'SessionState',
]
