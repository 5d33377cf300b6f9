"""Core plugin - the object a build tool holds for the whole build."""
import logging
from typing import Any, Mapping, MutableMapping, Optional, Union

import httpx

from ..models import PluginOptions, SettlementReport
from ..services.api_client import HTTPAPIClient
from ..services.uploader import SourceMapUploader, UPLOAD_TIMEOUT
from .pipeline import SourceMapPipeline, should_upload
from .scheduler import ConcurrencyScheduler

logger = logging.getLogger(__name__)


class SourceMapPlugin:
    """
    Build plugin that uploads emitted sourcemaps after bundling.

    Options are validated here, before any build artifacts exist. Each
    build opens its own HTTP client and closes it once every upload has
    settled.

    Usage:
        plugin = SourceMapPlugin({
            "token": "project-token",
            "dsn": "https://errors.example.com/",
            "productionSourceMap": False,
        })
        plugin.scheduler.on_task_fail(lambda outcome: print(outcome.error))
        report = await plugin.generate_bundle(None, bundle)
    """

    name = "eyes-sourcemap-vite"
    apply = "build"

    def __init__(
        self,
        options: Union[PluginOptions, Mapping[str, Any]],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = UPLOAD_TIMEOUT,
        scheduler: Optional[ConcurrencyScheduler] = None,
    ):
        """
        Initialize plugin with its options.

        Args:
            options: PluginOptions, or a mapping of build-tool option names
            transport: httpx transport override (tests, proxies)
            timeout: per-upload hard timeout in seconds
            scheduler: pre-built scheduler, e.g. with listeners attached

        Raises:
            ConfigurationError: required options are missing or invalid
        """
        if not isinstance(options, PluginOptions):
            options = PluginOptions.from_options(options)
        self._options = options
        self._transport = transport
        self._timeout = timeout
        self._scheduler = scheduler or ConcurrencyScheduler()

    @property
    def options(self) -> PluginOptions:
        return self._options

    @property
    def scheduler(self) -> ConcurrencyScheduler:
        return self._scheduler

    async def generate_bundle(
        self,
        output_options: Any,
        bundle: MutableMapping[str, Any],
        build_command: Optional[str] = None,
        force: bool = False,
    ) -> Optional[SettlementReport]:
        """
        Bundle hook: upload map files in ``bundle`` and apply retention.

        ``output_options`` is accepted for hook compatibility and unused.
        """
        if not force and not should_upload(self._options.upload_script, build_command):
            logger.debug("Build command does not match upload script, skipping sourcemap upload")
            return None

        async with HTTPAPIClient(
            self._options.base_url,
            timeout=self._timeout,
            max_connections=self._options.concurrency,
            transport=self._transport,
        ) as api_client:
            pipeline = SourceMapPipeline(
                self._options,
                SourceMapUploader(api_client, self._options, timeout=self._timeout),
                self._scheduler,
            )
            return await pipeline.run(bundle, build_command=build_command, force=True)
