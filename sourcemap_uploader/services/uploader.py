"""Single map file upload with a hard timeout."""
import asyncio
import logging
from typing import Any

import httpx

from ..models import FailureReason, PluginOptions, UploadOutcome
from ..protocols import IAPIClient

logger = logging.getLogger(__name__)

# Seconds from request initiation until the upload is cancelled
UPLOAD_TIMEOUT = 30


class SourceMapUploader:
    """
    Uploads one map file to the ingestion endpoint.

    Every failure mode (non-200 status, transport error, timeout) is turned
    into a failed UploadOutcome; upload() does not raise.
    """

    AUTH_FIELD = "apiKey"

    def __init__(
        self,
        api_client: IAPIClient,
        options: PluginOptions,
        timeout: float = UPLOAD_TIMEOUT,
    ):
        self._api_client = api_client
        self._options = options
        self._timeout = timeout

    async def upload(self, name: str, content: bytes) -> UploadOutcome:
        try:
            response = await asyncio.wait_for(
                self._api_client.post_file(
                    self._options.api,
                    name,
                    content,
                    data={self.AUTH_FIELD: self._options.token},
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._fail(
                name,
                FailureReason.TIMEOUT,
                f"upload timed out after {self._timeout}s (file: {name})",
            )
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            return self._fail(
                name,
                FailureReason.TRANSPORT,
                f"error during upload: {error_msg} (file: {name})",
            )

        if response.status_code != 200:
            return self._fail(
                name,
                FailureReason.HTTP_STATUS,
                f"upload failed: {response.status_code} (file: {name})",
                status_code=response.status_code,
            )

        if self._options.logger:
            logger.info(f"{name} upload complete")
        return UploadOutcome.ok(name, self._parse_body(response))

    def _fail(self, name: str, reason: FailureReason, error: str, status_code=None) -> UploadOutcome:
        if self._options.logger:
            logger.warning(error)
        return UploadOutcome.fail(name, reason, error, status_code=status_code)

    @staticmethod
    def _parse_body(response: Any) -> Any:
        try:
            return response.json()
        except ValueError:
            # Not JSON
            return response.text
