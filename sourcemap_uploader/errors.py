"""Exception types for sourcemap_uploader."""


class SourceMapUploadError(Exception):
    """Base error for the package."""


class ConfigurationError(SourceMapUploadError, ValueError):
    """Raised when plugin options are missing or invalid."""


class ScheduleError(SourceMapUploadError, ValueError):
    """Raised when a scheduling run is given structurally invalid arguments."""
