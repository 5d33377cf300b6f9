"""
Protocols (Interfaces) for Dependency Inversion.

Small, focused interfaces between the pipeline and its transports.
"""
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .models import UploadOutcome


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for ingestion API operations."""

    async def post_file(
        self,
        endpoint: str,
        filename: str,
        content: bytes,
        data: Optional[Dict[str, str]] = None,
    ) -> Any:
        """POST a multipart body with a single file field."""
        ...


@runtime_checkable
class IUploader(Protocol):
    """Interface for single map file uploads."""

    async def upload(self, name: str, content: bytes) -> UploadOutcome:
        """Upload one named blob. Must never raise."""
        ...
