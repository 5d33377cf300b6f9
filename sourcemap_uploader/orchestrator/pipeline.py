"""Pipeline driver - selects map artifacts, uploads them, applies retention."""
import logging
import os
from typing import Any, List, MutableMapping, Optional

from ..models import MAP_SUFFIX, PluginOptions, SettlementReport
from ..protocols import IUploader
from .models import UploadTask
from .scheduler import ConcurrencyScheduler

logger = logging.getLogger(__name__)

BUILD_COMMAND_ENV = "npm_lifecycle_script"


def current_build_command() -> str:
    """Build command recorded by the package runner, or an empty string."""
    return os.environ.get(BUILD_COMMAND_ENV, "")


def should_upload(upload_script, build_command: Optional[str] = None) -> bool:
    """True when the build command contains one of the trigger substrings."""
    if build_command is None:
        build_command = current_build_command()
    return any(cmd in build_command for cmd in upload_script)


def is_map_file(filename: str) -> bool:
    return filename.endswith(MAP_SUFFIX)


def artifact_content(artifact: Any) -> bytes:
    """
    Extract the payload of one bundle entry.

    Entries are raw text/bytes, or records exposing ``source`` (assets) or
    ``code`` (chunks) either as attributes or as mapping keys.
    """
    if isinstance(artifact, (str, bytes, bytearray)):
        value = artifact
    elif isinstance(artifact, dict):
        value = artifact.get("source") or artifact.get("code") or ""
    else:
        value = getattr(artifact, "source", None) or getattr(artifact, "code", None) or ""

    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class SourceMapPipeline:
    """
    Runs once per build against the bundler's artifact mapping.

    The mapping is only mutated by the retention step, after every upload
    has settled.
    """

    def __init__(
        self,
        options: PluginOptions,
        uploader: IUploader,
        scheduler: Optional[ConcurrencyScheduler] = None,
    ):
        self._options = options
        self._uploader = uploader
        self._scheduler = scheduler or ConcurrencyScheduler()

    @property
    def scheduler(self) -> ConcurrencyScheduler:
        return self._scheduler

    def should_run(self, build_command: Optional[str] = None) -> bool:
        return should_upload(self._options.upload_script, build_command)

    def build_tasks(self, bundle: MutableMapping[str, Any]) -> List[UploadTask]:
        """One deferred upload per map file. Content is read here, once."""
        tasks = []
        for filename, artifact in list(bundle.items()):
            if not is_map_file(filename):
                continue
            content = artifact_content(artifact)
            tasks.append(UploadTask(filename, self._bind(filename, content)))
        return tasks

    def _bind(self, filename: str, content: bytes):
        def run():
            return self._uploader.upload(filename, content)
        return run

    async def run(
        self,
        bundle: MutableMapping[str, Any],
        build_command: Optional[str] = None,
        force: bool = False,
    ) -> Optional[SettlementReport]:
        """
        Upload every map file in ``bundle`` and apply the retention policy.

        Returns None when the activation gate does not match; the bundle is
        left untouched in that case.
        """
        if not force and not self.should_run(build_command):
            logger.debug("Build command does not match upload script, skipping sourcemap upload")
            return None

        report = None

        try:
            tasks = self.build_tasks(bundle)
            if self._options.logger:
                logger.info(
                    f"Uploading {len(tasks)} sourcemap(s) to {self._options.endpoint} "
                    f"(concurrency {self._options.concurrency})"
                )
            report = await self._scheduler.schedule(tasks, self._options.concurrency)
        except Exception as e:
            logger.error(f"Error during sourcemap upload: {e}")
        finally:
            # Retention runs even if the upload run is cancelled
            if not self._options.production_source_map:
                self.apply_retention(bundle)

        if report is not None and self._options.logger:
            logger.info(
                f"Sourcemap upload complete: {len(report.succeeded)} successful, "
                f"{len(report.failed)} failed"
            )

        return report

    def apply_retention(self, bundle: MutableMapping[str, Any]) -> List[str]:
        """Remove every map file from ``bundle``. Returns the removed names."""
        removed = [filename for filename in list(bundle.keys()) if is_map_file(filename)]
        for filename in removed:
            del bundle[filename]
        if removed:
            logger.debug(f"Removed {len(removed)} sourcemap(s) from build output")
        return removed
