"""
Sourcemap uploader - post-build upload of debug-map files.

Finds emitted ``.map`` artifacts, uploads them to an ingestion endpoint
with a bounded number of uploads in flight, and optionally strips them
from the build output.

Usage:
    from sourcemap_uploader import SourceMapPlugin

    plugin = SourceMapPlugin({
        "token": "project-token",
        "dsn": "https://errors.example.com",
        "productionSourceMap": False,
        "concurrency": 5,
    })

    # bundle: mapping of output filename -> asset/chunk record
    report = await plugin.generate_bundle(None, bundle)

    # Run the scheduler directly
    from sourcemap_uploader import ConcurrencyScheduler, UploadTask

    report = await ConcurrencyScheduler().schedule(tasks, limit=3)
    for outcome in report.failed:
        print(outcome.filename, outcome.reason, outcome.error)
"""
from .errors import ConfigurationError, ScheduleError, SourceMapUploadError
from .models import (
    FailureReason,
    PluginOptions,
    SettlementReport,
    UploadOutcome,
    UploadStatus,
)
from .orchestrator import (
    BuildOutputBundle,
    ConcurrencyScheduler,
    SourceMapPipeline,
    SourceMapPlugin,
    UploadTask,
)
from .services import HTTPAPIClient, SourceMapUploader

__version__ = "0.1.0"
__all__ = [
    # Main
    "SourceMapPlugin",
    "SourceMapPipeline",
    "ConcurrencyScheduler",
    "BuildOutputBundle",
    "UploadTask",
    # Models
    "PluginOptions",
    "UploadOutcome",
    "UploadStatus",
    "FailureReason",
    "SettlementReport",
    # Services
    "HTTPAPIClient",
    "SourceMapUploader",
    # Errors
    "SourceMapUploadError",
    "ConfigurationError",
    "ScheduleError",
]
