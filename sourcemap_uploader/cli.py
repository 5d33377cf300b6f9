"""Command line interface for sourcemap_uploader."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .cli_progress import (
    UploadProgressDisplay,
    _human_size,
    render_configuration_summary,
    render_report,
)
from .errors import ConfigurationError
from .models import DEFAULT_API, DEFAULT_CONCURRENCY, DEFAULT_UPLOAD_SCRIPT, PluginOptions


EXIT_CONFIG_ERROR = 1
EXIT_UPLOAD_FAILED = 2


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    from rich.logging import RichHandler

    handler = RichHandler(
        rich_tracebacks=True,
        markup=True,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _resolve_options(args: argparse.Namespace) -> PluginOptions:
    """Merge flags over SOURCEMAP_* environment variables."""
    concurrency: Any = args.concurrency
    if concurrency is None:
        env_concurrency = os.getenv("SOURCEMAP_CONCURRENCY")
        if env_concurrency:
            try:
                concurrency = int(env_concurrency)
            except ValueError:
                raise ConfigurationError(
                    f"SOURCEMAP_CONCURRENCY must be an integer, got {env_concurrency!r}"
                ) from None
        else:
            concurrency = DEFAULT_CONCURRENCY

    options: Dict[str, Any] = {
        "token": args.token or os.getenv("SOURCEMAP_TOKEN"),
        "dsn": args.dsn or os.getenv("SOURCEMAP_DSN"),
        "productionSourceMap": args.keep_source_maps,
        "uploadScript": args.upload_script or list(DEFAULT_UPLOAD_SCRIPT),
        "concurrency": concurrency,
        "api": args.api or os.getenv("SOURCEMAP_API") or DEFAULT_API,
        "logger": not args.quiet_uploads,
    }
    return PluginOptions.from_options(options)


async def _run_upload(
    build_dir: Path,
    options: PluginOptions,
    build_command: Optional[str],
    force: bool,
    show_progress: bool,
):
    from .orchestrator import BuildOutputBundle, SourceMapPlugin
    from .orchestrator.pipeline import is_map_file

    bundle = BuildOutputBundle(build_dir)
    map_count = sum(1 for name in bundle if is_map_file(name))

    plugin = SourceMapPlugin(options)
    display = None
    if show_progress:
        display = UploadProgressDisplay(map_count)
        display.attach(plugin.scheduler)

    try:
        return await plugin.generate_bundle(None, bundle, build_command=build_command, force=force)
    finally:
        if display is not None:
            display.stop()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sourcemap-up",
        description="Upload sourcemaps from a build output folder to an ingestion endpoint.",
    )
    parser.add_argument("build_dir", nargs="?", type=Path, help="Build output folder (e.g. dist)")
    parser.add_argument("--token", default=None, help="Project token (default from SOURCEMAP_TOKEN)")
    parser.add_argument("--dsn", default=None, help="Ingestion base URL (default from SOURCEMAP_DSN)")
    parser.add_argument(
        "--api",
        default=None,
        help=f"Upload path appended to dsn (default from SOURCEMAP_API or {DEFAULT_API})",
    )
    parser.add_argument(
        "-c",
        "--concurrency",
        type=int,
        default=None,
        help=f"Maximum uploads in flight (default from SOURCEMAP_CONCURRENCY or {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "-k",
        "--keep-source-maps",
        action="store_true",
        help="Keep .map files in the build output after uploading",
    )
    parser.add_argument(
        "-s",
        "--upload-script",
        action="append",
        default=None,
        help="Build command substring that enables uploads (repeatable)",
    )
    parser.add_argument(
        "--build-command",
        default=None,
        help="Build command to match against (default from npm_lifecycle_script)",
    )
    parser.add_argument("--force", action="store_true", help="Upload regardless of build command")
    parser.add_argument(
        "--strict",
        action="store_true",
        help=f"Exit with status {EXIT_UPLOAD_FAILED} when any upload fails",
    )
    parser.add_argument(
        "--quiet-uploads",
        action="store_true",
        help="Suppress per-upload info and warning log lines",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress display")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="sourcemap-up (from sourcemap_uploader)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return EXIT_CONFIG_ERROR

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.build_dir is None:
        parser.print_help()
        return 0

    build_dir = Path(args.build_dir).expanduser()
    if not build_dir.is_dir():
        print(f"ERROR: build output folder does not exist: {build_dir}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        options = _resolve_options(args)
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    map_files = [p for p in build_dir.rglob("*.map") if p.is_file()]
    map_bytes = sum(p.stat().st_size for p in map_files)

    if not args.silent:
        render_configuration_summary(
            {
                "Build Dir": str(build_dir),
                "Sourcemaps": f"{len(map_files)} ({_human_size(map_bytes)})",
                "Endpoint": options.endpoint,
                "Concurrency": options.concurrency,
                "Keep Maps": "yes" if options.production_source_map else "no",
                "Upload Script": ", ".join(options.upload_script),
                "Force": "yes" if args.force else "no",
                "Env File": str(used_env_file) if used_env_file else "-",
                "Logging": effective_log_mode,
            }
        )

    try:
        report = asyncio.run(
            _run_upload(
                build_dir=build_dir,
                options=options,
                build_command=args.build_command,
                force=args.force,
                show_progress=not (args.silent or args.no_progress),
            )
        )
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    if not args.silent:
        render_report(report)

    if args.strict and report is not None and not report.all_success:
        return EXIT_UPLOAD_FAILED
    return 0


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
