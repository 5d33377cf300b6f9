"""Orchestrator package - coordinates sourcemap upload runs."""
from .core import SourceMapPlugin
from .file_collector import BuildOutputBundle
from .models import UploadTask
from .pipeline import SourceMapPipeline
from .scheduler import ConcurrencyScheduler

__all__ = [
    "SourceMapPlugin",
    "BuildOutputBundle",
    "UploadTask",
    "SourceMapPipeline",
    "ConcurrencyScheduler",
]
