"""Command line interface for docbridge."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path

import typer
import uvicorn
from loguru import logger

from .config import AppConfig, StorageConfig, WebConfig, load_config, mask_secret
from .service import ConversionResult, DocumentService
from .storage import ProgressEvent, RetrievalError
from .web import create_app


@dataclass(slots=True)
class CLIState:
    """Holds shared state between Typer commands."""

    config_path: Path
    log_level: str | None = None
    _config: AppConfig | None = None

    def ensure_config(self, *, required: bool = True) -> AppConfig:
        if self._config is None:
            if not required and not self.config_path.exists():
                logger.warning("Configuration {} not found; using defaults", self.config_path)
                self._config = AppConfig()
            else:
                self._config = load_config(AppConfig, self.config_path)
            _configure_logging(self.log_level or self._config.logging_level)
            logger.debug("Loaded configuration from {}", self.config_path)
        return self._config


app = typer.Typer(help="Fetch documents from S3 and deliver them as PDF")


def _default_config_path() -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    return repo_root / "config" / "example.toml"


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):  # pragma: no cover - defensive guard
        raise RuntimeError("CLI context is not initialised")
    return state


def _exit(code: int) -> None:
    raise typer.Exit(code)


def _with_storage_overrides(
    config: AppConfig,
    *,
    bucket: str | None = None,
    key: str | None = None,
    region: str | None = None,
) -> AppConfig:
    if config.storage is None:
        logger.error("No [storage] section in the configuration")
        _exit(2)
    overrides = {
        name: value
        for name, value in (("bucket", bucket), ("key", key), ("region", region))
        if value is not None
    }
    if not overrides:
        return config
    storage = StorageConfig.model_validate({**config.storage.model_dump(), **overrides})
    return config.model_copy(update={"storage": storage})


def _build_service(config: AppConfig) -> DocumentService:
    try:
        return DocumentService.from_config(config)
    except (EnvironmentError, ValueError) as exc:
        logger.error("Cannot initialise storage credentials: {}", exc)
        raise typer.Exit(2) from exc


def _log_progress(event: ProgressEvent) -> None:
    logger.info("[{:>3}%] {}", event.percentage, event.message)
    if event.signed_url:
        logger.debug("Request URL: {}...", event.signed_url[:100])


def _report_retrieval_error(exc: RetrievalError) -> None:
    logger.error("Download failed: {}", exc.message)
    for attempt in exc.attempts:
        logger.debug(
            "  {} ({} tries): {} [status={}, code={}]",
            attempt.strategy,
            attempt.tries,
            attempt.error,
            attempt.status_code,
            attempt.error_code,
        )
    if exc.troubleshooting:
        logger.info("Troubleshooting steps:")
        for step in exc.troubleshooting:
            logger.info("  - {}", step)


def _write_result(result: ConversionResult, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.pdf)
    if result.diagnostic:
        logger.warning("{} could not be converted; wrote a diagnostic PDF to {}", result.filename, output)
    else:
        logger.info("Wrote {} bytes to {}", len(result.pdf), output)
    typer.echo(json.dumps({**result.as_dict(), "output": str(output)}, indent=2, ensure_ascii=False))


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(
        _default_config_path(),
        help="Path to the TOML configuration file",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Override the configured logging level",
    ),
) -> None:
    """Initialise CLI state."""

    state = CLIState(config_path=config.resolve(), log_level=log_level)
    ctx.obj = state

    if ctx.invoked_subcommand is None:
        state.ensure_config(required=False)
        logger.warning("No command provided. Try 'status' or 'fetch --output out.pdf'.")
        _exit(0)


@app.command(help="Download the configured document and write it as PDF")
def fetch(
    ctx: typer.Context,
    output: Path = typer.Option(..., "--output", "-o", help="Where to write the PDF"),
    bucket: str | None = typer.Option(None, help="Override the configured bucket"),
    key: str | None = typer.Option(None, help="Override the configured object key"),
    region: str | None = typer.Option(None, help="Override the configured region"),
) -> None:
    state = _get_state(ctx)
    config = _with_storage_overrides(state.ensure_config(), bucket=bucket, key=key, region=region)
    service = _build_service(config)

    try:
        result = service.fetch_pdf(on_progress=_log_progress)
    except RetrievalError as exc:
        _report_retrieval_error(exc)
        _exit(1)
        return
    finally:
        service.close()

    _write_result(result, output)


@app.command(help="Convert a local file to PDF without touching the network")
def convert(
    ctx: typer.Context,
    input: Path = typer.Argument(  # noqa: A002 - match CLI argument name
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Document to convert",
    ),
    output: Path = typer.Option(..., "--output", "-o", help="Where to write the PDF"),
) -> None:
    state = _get_state(ctx)
    config = state.ensure_config(required=False)
    service = DocumentService(conversion=config.conversion)
    result = service.convert_bytes(input.read_bytes(), input.name)
    _write_result(result, output)


@app.command(help="Print a presigned GET URL for the configured document")
def presign(
    ctx: typer.Context,
    expires: int | None = typer.Option(
        None,
        min=1,
        max=604800,
        help="URL lifetime in seconds (defaults to retrieval.presign_expires)",
    ),
    key: str | None = typer.Option(None, help="Override the configured object key"),
) -> None:
    state = _get_state(ctx)
    config = _with_storage_overrides(state.ensure_config(), key=key)
    service = _build_service(config)
    request = service.presign(expires=expires)
    if request.expiry is not None:
        logger.info("URL expires at {}", request.expiry.isoformat())
    typer.echo(request.url)


@app.command("check-connection", help="Verify the credentials against the configured bucket")
def check_connection(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = _with_storage_overrides(state.ensure_config())
    service = _build_service(config)
    try:
        result = service.check_connection()
    finally:
        service.close()
    payload = {"success": result.success, "message": result.message, "status_code": result.status_code}
    typer.echo(json.dumps(payload, indent=2))
    if result.success:
        logger.info("{}", result.message)
        return
    logger.error("{}", result.message)
    _exit(1)


@app.command(help="Show configuration status with secrets masked")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()
    _report_system_status(config, state.config_path)


@app.command(help="Run the PDF delivery API server")
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Host to bind the API server to"),
    port: int | None = typer.Option(None, help="Port to bind the API server to"),
    dry_run: bool = typer.Option(
        False,
        help="Build the application and report status without running the server",
    ),
) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()
    web = config.web or WebConfig()
    service = _build_service(config) if config.storage is not None else DocumentService(conversion=config.conversion)
    app_instance = create_app(service, config)

    bind_host = host or web.host
    bind_port = port or web.port
    if dry_run:
        logger.info("[Dry Run] Server would listen on {}:{}; not starting.", bind_host, bind_port)
        return

    uvicorn.run(app_instance, host=bind_host, port=bind_port)


def _report_system_status(config: AppConfig, config_path: Path) -> None:
    logger.info("=== DocBridge Status ===")
    logger.info("Config file: {}", config_path)
    logger.info("Logging level: {}", config.logging_level)

    logger.info("\n=== Storage ===")
    if config.storage:
        storage = config.storage
        logger.info("Object: s3://{}/{} ({})", storage.bucket, storage.key, storage.region)
        logger.info("Access key: {}", _describe_secret(storage.access_key_id))
        logger.info("Secret key: {}", _describe_secret(storage.secret_access_key))
        logger.info("Session token: {}", _describe_secret(storage.session_token))
    else:
        logger.info("Not configured")

    logger.info("\n=== Retrieval ===")
    retrieval = config.retrieval
    logger.info(
        "Attempts per strategy: {}, backoff: {}s, timeout: {}s, presign expiry: {}s",
        retrieval.max_attempts,
        retrieval.backoff_seconds,
        retrieval.timeout,
        retrieval.presign_expires,
    )

    logger.info("\n=== Conversion ===")
    for name, layout in (("Documents", config.conversion.document), ("Spreadsheets", config.conversion.spreadsheet)):
        logger.info(
            "{}: {}x{}pt, margin {}, {} {}pt, {} chars/line",
            name,
            layout.page_width,
            layout.page_height,
            layout.margin,
            layout.font,
            layout.font_size,
            layout.max_chars_per_line,
        )
    logger.info("Max table columns: {}", config.conversion.max_columns)

    logger.info("\n=== Web ===")
    if config.web:
        logger.info("Bind: {}:{}", config.web.host, config.web.port)
    else:
        logger.info("Not configured (defaults apply)")


def _describe_secret(value: str | None) -> str:
    if value and value.startswith("env:"):
        return f"from environment variable {value.split(':', 1)[1]}"
    return mask_secret(value)


def main(argv: list[str] | None = None) -> int:
    """Entry point compatible with setuptools console scripts."""

    try:
        result = app(args=argv, standalone_mode=False)
    except typer.Exit as exc:  # pragma: no cover - Typer translates exit codes
        return exc.exit_code
    if isinstance(result, int):
        return result
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
