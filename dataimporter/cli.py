"""Command line interface for dataimporter package."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import httpx
from rich.logging import RichHandler

from .cli_progress import (
    PipelineProgressDisplay,
    human_size,
    mask_secret,
    render_configuration_summary,
    render_result,
)
from .config import (
    DEFAULT_CONFIG_FILE,
    ImporterConfig,
    build_request,
    read_config_file,
    read_env_values,
)
from .errors import ConfigurationError, DataImportError
from .models import ImportAction, ImportRequest, ImportResult
from .orchestrator import DataImporter


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided;
    pipeline progress is printed by the progress display either way.
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
    # httpx request lines are noise outside debugging
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


def _resolve_default_config_file() -> Optional[Path]:
    default_config = Path(DEFAULT_CONFIG_FILE)
    return default_config if default_config.is_file() else None


def _describe_archive(archive: Optional[Path]) -> str:
    if archive is None:
        return "(built from data + descriptor)"
    if archive.is_file():
        return f"{archive} ({human_size(archive.stat().st_size)})"
    return str(archive)


def _cli_values(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "organization_id": args.org,
        "user_name": args.user,
        "password": args.password,
        "data_path": args.data,
        "descriptor_path": args.descriptor,
        "action": args.action,
        "run_in_background": args.background,
        "notify_by_email": args.notify_email,
        "share_with_all_users": args.all_users,
    }


def _build_request(args: argparse.Namespace, config_file: Optional[Path]) -> ImportRequest:
    """Config file, then environment, then CLI flags (highest precedence)."""
    file_values = read_config_file(config_file) if config_file else {}
    return build_request(file_values, read_env_values(), _cli_values(args))


def _run_import(
    request: ImportRequest,
    config: ImporterConfig,
    archive: Optional[Path] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ImportResult:
    display = PipelineProgressDisplay()
    with DataImporter(config, log=display.on_log, transport=transport) as importer:
        try:
            handle = importer.open_archive(archive) if archive else None
            pipeline = importer.create_pipeline(request, archive=handle)
            display.attach(pipeline.events)
            return pipeline.run()
        except DataImportError as exc:
            return ImportResult.fail(request.organization_id, str(exc), stage=display.last_stage)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sk-import",
        description="Zip a data file with its descriptor and upload it to the data import API.",
    )
    parser.add_argument(
        "config",
        nargs="?",
        type=Path,
        help=f"XML config file (default: ./{DEFAULT_CONFIG_FILE} when present)",
    )
    parser.add_argument("-o", "--org", default=None, help="Organization name")
    parser.add_argument("-u", "--user", default=None, help="Login user name")
    parser.add_argument(
        "--password",
        default=None,
        help="Login password (prefer DATAIMPORT_PASSWORD in the environment)",
    )
    parser.add_argument("-d", "--data", type=Path, default=None, help="Data file to import")
    parser.add_argument("-x", "--descriptor", type=Path, default=None, help="Descriptor (XML) file")
    parser.add_argument(
        "-a",
        "--action",
        choices=[action.value for action in ImportAction],
        default=None,
        help="Import action (default: overwrite)",
    )
    parser.add_argument(
        "--background",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Return as soon as the upload is received (default: yes)",
    )
    parser.add_argument(
        "--notify-email",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Email the user when the import completes",
    )
    parser.add_argument(
        "--all-users",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Share the dataset with the All Users group",
    )
    parser.add_argument(
        "--archive",
        type=Path,
        default=None,
        help="Upload this existing ZIP instead of zipping --data/--descriptor",
    )
    parser.add_argument("--domain", default=None, help="Directory service domain")
    parser.add_argument("--upload-url", default=None, help="Override the upload endpoint URL")
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    parser.add_argument("--temp-dir", type=Path, default=None, help="Directory for the temporary archive")
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
        version="sk-import (from dataimporter)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None, transport: Optional[httpx.BaseTransport] = None) -> int:
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

    config_file = args.config or _resolve_default_config_file()
    if args.archive is not None:
        # The request's file paths are not read when uploading an existing archive
        if args.data is None:
            args.data = args.archive
        if args.descriptor is None:
            args.descriptor = args.archive

    try:
        request = _build_request(args, config_file)
        importer_config = ImporterConfig.from_env(
            directory_domain=args.domain,
            upload_url=args.upload_url,
            timeout=args.timeout,
            temp_dir=args.temp_dir,
        )
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Organization": request.organization_id,
            "User": request.user_name,
            "Password": mask_secret(request.password),
            "Data": str(request.data_path) if args.archive is None else "-",
            "Descriptor": str(request.descriptor_path) if args.archive is None else "-",
            "Archive": _describe_archive(args.archive),
            "Action": request.action.value,
            "Background": "yes" if request.run_in_background else "no",
            "Notify By Email": "yes" if request.notify_by_email else "no",
            "All Users": "yes" if request.share_with_all_users else "no",
            "Directory": importer_config.directory_domain,
            "Upload URL": importer_config.upload_url or "(cluster default)",
            "Timeout": f"{importer_config.timeout:g}s",
            "Config File": str(config_file) if config_file else "-",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        result = _run_import(request, importer_config, archive=args.archive, transport=transport)
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    render_result(result)
    return 0 if result.success else 1


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
