"""Services for sourcemap_uploader."""
from .api_client import HTTPAPIClient
from .uploader import SourceMapUploader, UPLOAD_TIMEOUT

__all__ = [
    "HTTPAPIClient",
    "SourceMapUploader",
    "UPLOAD_TIMEOUT",
]
