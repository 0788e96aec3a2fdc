"""
Custom exceptions for the pH colorimetry engine.
"""


class ColorimetryError(Exception):
    """Base exception for colorimetry-related errors."""
    pass


class DataValidationError(ColorimetryError):
    """Raised when calibration point data is malformed."""
    pass


class ValidationError(ColorimetryError):
    """Raised when a user-initiated action is rejected (bad pH, weak sample)."""
    pass


class SnapshotParseError(ColorimetryError):
    """Raised when an imported calibration file cannot be parsed."""
    pass


class AssetLoadError(ColorimetryError):
    """Raised when a calibration asset cannot be fetched or decoded."""
    pass


class StorageError(ColorimetryError):
    """Raised when the durable key-value store rejects a write."""
    pass


class FrameSourceError(ColorimetryError):
    """Raised when no frame is available from the frame source."""
    pass


class ConfigurationError(ColorimetryError):
    """Raised when configuration is invalid."""
    pass


class UnknownCurveError(ColorimetryError, KeyError):
    """Raised when a calibration source name is not registered."""
    pass
