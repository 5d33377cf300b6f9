"""
Models for sourcemap_uploader.

Immutable dataclasses for upload outcomes and plugin options.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from .errors import ConfigurationError


DEFAULT_UPLOAD_SCRIPT = ("vite build",)
DEFAULT_CONCURRENCY = 5
DEFAULT_API = "/api/upload/sourcemap"
MAP_SUFFIX = ".map"


class UploadStatus(Enum):
    """Upload operation status."""
    SUCCESS = "success"
    FAILED = "failed"


class FailureReason(Enum):
    """Why an upload did not succeed."""
    HTTP_STATUS = "http_status"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    TASK_ERROR = "task_error"


@dataclass(frozen=True)
class UploadOutcome:
    """Immutable result of a single map file upload."""
    filename: str
    status: UploadStatus = UploadStatus.SUCCESS
    response: Any = None
    reason: Optional[FailureReason] = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == UploadStatus.SUCCESS

    @classmethod
    def ok(cls, filename: str, response: Any = None):
        return cls(filename=filename, status=UploadStatus.SUCCESS, response=response)

    @classmethod
    def fail(
        cls,
        filename: str,
        reason: FailureReason,
        error: str,
        status_code: Optional[int] = None,
    ):
        return cls(
            filename=filename,
            status=UploadStatus.FAILED,
            reason=reason,
            status_code=status_code,
            error=error,
        )


@dataclass(frozen=True)
class SettlementReport:
    """Outcomes of one scheduling run, in input task order."""
    outcomes: Tuple[UploadOutcome, ...] = ()

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self) -> Iterator[UploadOutcome]:
        return iter(self.outcomes)

    def __getitem__(self, index: int) -> UploadOutcome:
        return self.outcomes[index]

    @property
    def succeeded(self) -> List[UploadOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[UploadOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def all_success(self) -> bool:
        return not self.failed


# camelCase build-tool option name -> dataclass field
_OPTION_ALIASES = {
    "productionSourceMap": "production_source_map",
    "uploadScript": "upload_script",
}


@dataclass(frozen=True)
class PluginOptions:
    """
    Immutable, validated plugin configuration.

    Construct directly with snake_case fields or with from_options() using
    the build tool's camelCase option names.
    """
    token: str
    dsn: str
    production_source_map: bool
    upload_script: Tuple[str, ...] = DEFAULT_UPLOAD_SCRIPT
    concurrency: int = DEFAULT_CONCURRENCY
    api: str = DEFAULT_API
    logger: bool = True

    def __post_init__(self):
        if not self.token or not self.dsn or self.production_source_map is None:
            raise ConfigurationError(
                "sourcemap uploader is missing required options (token, dsn, productionSourceMap)"
            )
        if not isinstance(self.token, str) or not isinstance(self.dsn, str):
            raise ConfigurationError("token and dsn must be strings")
        if not isinstance(self.production_source_map, bool):
            raise ConfigurationError(
                f"productionSourceMap must be a boolean, got {self.production_source_map!r}"
            )
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise ConfigurationError(
                f"concurrency must be an integer, got {self.concurrency!r}"
            )
        if self.concurrency < 1:
            raise ConfigurationError(
                f"concurrency must be a positive integer, got {self.concurrency}"
            )
        if not isinstance(self.api, str):
            raise ConfigurationError(f"api must be a string, got {self.api!r}")

        script = self.upload_script
        if isinstance(script, str):
            script = (script,)
        try:
            script = tuple(script)
        except TypeError:
            raise ConfigurationError(
                f"uploadScript must be a list of strings, got {self.upload_script!r}"
            ) from None
        if not all(isinstance(cmd, str) for cmd in script):
            raise ConfigurationError("uploadScript entries must be strings")

        object.__setattr__(self, "upload_script", script)
        object.__setattr__(self, "logger", bool(self.logger))

    @property
    def base_url(self) -> str:
        """dsn without its trailing slash."""
        return self.dsn[:-1] if self.dsn.endswith("/") else self.dsn

    @property
    def endpoint(self) -> str:
        return self.base_url + self.api

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "PluginOptions":
        """Build options from a build-tool style mapping."""
        kwargs = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise ConfigurationError(f"unknown sourcemap uploader option: {key}")
            kwargs[name] = value
        for required in ("token", "dsn", "production_source_map"):
            kwargs.setdefault(required, None)
        return cls(**kwargs)
