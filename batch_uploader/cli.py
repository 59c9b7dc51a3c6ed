"""Command line interface for batch_uploader."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal as signals
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import BatchUploadProgress, render_configuration_summary
from .errors import UploadError
from .models import UploadConfig
from .orchestrator import UploadOrchestrator
from .services.manifest import ManifestError, load_manifest
from .services.transport import HTTPTransport
from .utils.cancellation import CancellationSignal

EXIT_CANCELLED = 130


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

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
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


def _install_signal_handlers(cancel: CancellationSignal) -> None:
    loop = asyncio.get_running_loop()
    for signum in (signals.SIGINT, signals.SIGTERM):
        try:
            loop.add_signal_handler(signum, cancel.abort, f"Interrupted by {signum.name}")
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform's event loop
            pass


async def _run_upload(manifest: Path, config: UploadConfig, cancel: CancellationSignal) -> int:
    try:
        descriptors = load_manifest(manifest)
    except ManifestError as exc:
        raise CLIError(str(exc)) from exc

    missing = [str(d.path) for d in descriptors if not d.path.is_file()]
    if missing:
        raise CLIError(f"file(s) not found: {', '.join(missing)}")

    if not descriptors:
        print("Nothing to upload.")
        return 0

    _install_signal_handlers(cancel)

    progress = BatchUploadProgress(
        total_bytes=sum(d.content_length for d in descriptors),
        file_count=len(descriptors),
    )
    progress.start()

    async with HTTPTransport() as transport:
        async with UploadOrchestrator(transport, cancel, config) as orchestrator:
            try:
                await orchestrator.upload(descriptors, progress.get_callback())
            except UploadError as exc:
                progress.complete(success=False, error=str(exc))
                return EXIT_CANCELLED if cancel.aborted else 1
            progress.complete(success=True)
            return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="batch-upload",
        description="Upload local files to pre-signed URLs listed in a JSON manifest.",
    )
    parser.add_argument("manifest", nargs="?", type=Path, help="JSON manifest of files to upload")
    parser.add_argument(
        "-r",
        "--retries",
        type=int,
        default=None,
        help="Retries per file (default from UPLOADER_RETRIES or 5)",
    )
    parser.add_argument(
        "-j",
        "--concurrency",
        type=int,
        default=None,
        help="Files uploading at once (default from UPLOADER_MAX_CONCURRENCY or 10)",
    )
    parser.add_argument(
        "--cancel-on-failure",
        action="store_true",
        help="Cancel the remaining uploads as soon as one file fails",
    )
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
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.manifest is None:
        parser.print_help()
        return 0

    manifest = Path(args.manifest).expanduser()
    if not manifest.is_file():
        print(f"ERROR: manifest does not exist: {manifest}", file=sys.stderr)
        return 1

    try:
        config = UploadConfig.from_env(
            retries=args.retries,
            max_concurrency=args.concurrency,
            cancel_on_failure=args.cancel_on_failure or None,
        )
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Manifest": str(manifest),
            "Retries": config.retries,
            "Concurrency": config.max_concurrency,
            "On Failure": "cancel others" if config.cancel_on_failure else "finish others",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    cancel = CancellationSignal()
    try:
        return asyncio.run(_run_upload(manifest, config, cancel))
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return EXIT_CANCELLED


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
