"""Main entry point for the bcconnector application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any, Coroutine, Dict, Optional

import typer

# --- Core Layer ---
from bcconnector.core.command_handler import CommandHandler, RequestContext, default_transport_factory

# --- Domain Layer ---
from bcconnector.domain.exceptions import ConfigurationError
from bcconnector.domain.models.common import JsonPayload
from bcconnector.domain.models.connection import HttpMethod

# --- Infrastructure Layer ---
from bcconnector.infrastructure.cli.display import ConsoleDisplay
from bcconnector.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE,
    describe_settings,
    get_config,
    get_connection_config,
    get_http_timeout,
    get_retry_policy,
    load_configuration,
)
from bcconnector.infrastructure.monitoring.logger_setup import (
    DEFAULT_LOG_FORMAT,
    resolve_log_level,
    setup_logging,
)

logger = logging.getLogger(__name__)

# --- Dependency Injection (Manual) ---

# Transport factory used by every command (tests replace it)
create_transport = default_transport_factory

def create_dependencies(
    config_file: Path = DEFAULT_CONFIG_FILE,
    max_concurrent: Optional[int] = None,
    max_retries: Optional[int] = None,
    log_level: Optional[str] = None,
    require_credentials: bool = True,
) -> Dict[str, Any]:
    """Creates and wires up the dependencies for one CLI invocation.

    This acts as the Composition Root.

    Raises:
        typer.Exit: With code 1 when the configuration is invalid.
    """
    dependencies: Dict[str, Any] = {'ui': ConsoleDisplay()}
    try:
        # 1. Load Configuration First
        load_configuration(config_file=config_file, reload=True)
        level = resolve_log_level(log_level or get_config('logging.level'))
        setup_logging(
            log_level=level,
            log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
            log_file=get_config('logging.file'),
        )
        logger.debug("Configuration and logging initialized.")

        if not require_credentials:
            return dependencies

        # 2. Build the request context
        context = RequestContext(
            config=get_connection_config(max_concurrent_requests=max_concurrent),
            retry_policy=get_retry_policy(max_retries=max_retries),
            timeout_seconds=get_http_timeout(),
        )
    except ConfigurationError as e:
        logger.debug(f"Configuration error: {e}", exc_info=True)
        dependencies['ui'].display_error(f"Configuration error: {e}")
        raise typer.Exit(code=1)

    # 3. Command handler
    dependencies['context'] = context
    dependencies['command_handler'] = CommandHandler(
        context=context,
        ui=dependencies['ui'],
        transport_factory=create_transport,
    )
    logger.debug("Command handler initialized.")
    return dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="bcconnector",
    help="CRUD requests against a store's REST API with automatic rate-limit retries.",
    add_completion=False,
    no_args_is_help=True,
)

# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, int]) -> None:
    """Runs an async command and exits with its status code."""
    exit_code = asyncio.run(coro)
    if exit_code:
        raise typer.Exit(code=exit_code)

def parse_body(data: Optional[str]) -> JsonPayload:
    """Parses --data: inline JSON, or @path to read JSON from a file."""
    if data is None:
        return None
    if data.startswith("@"):
        path = Path(data[1:])
        try:
            data = path.read_text(encoding="utf-8")
        except OSError as e:
            raise typer.BadParameter(f"Cannot read {path}: {e}", param_hint="--data")
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Not valid JSON: {e}", param_hint="--data")

# --- Shared options ---

PathArgument = Annotated[str, typer.Argument(help="Resource path relative to the store root, e.g. /products/42.")]

DataOption = Annotated[
    Optional[str],
    typer.Option("--data", "-d", help="JSON request body, or @file.json to read it from a file."),
]

ConfigFileOption = Annotated[
    Path,
    typer.Option("--config-file", "-c", help="YAML configuration file."),
]

MaxConcurrentOption = Annotated[
    Optional[int],
    typer.Option("--max-concurrent", min=1, help="Maximum simultaneous in-flight requests."),
]

MaxRetriesOption = Annotated[
    Optional[int],
    typer.Option("--max-retries", min=0, help="Give up after this many rate-limit retries (default: unlimited)."),
]

LogLevelOption = Annotated[
    Optional[str],
    typer.Option("--log-level", "-l", help="Logging level (debug, info, warning, error)."),
]

def _run_request(
    method: HttpMethod,
    path: str,
    body: JsonPayload,
    config_file: Path,
    max_concurrent: Optional[int],
    max_retries: Optional[int],
    log_level: Optional[str],
) -> None:
    dependencies = create_dependencies(
        config_file=config_file,
        max_concurrent=max_concurrent,
        max_retries=max_retries,
        log_level=log_level,
    )
    handler: CommandHandler = dependencies['command_handler']
    run_async(handler.handle_request(method, path, body))

# --- CLI Commands ---

@app.command()
def get(
    path: PathArgument,
    config_file: ConfigFileOption = DEFAULT_CONFIG_FILE,
    max_concurrent: MaxConcurrentOption = None,
    max_retries: MaxRetriesOption = None,
    log_level: LogLevelOption = None,
):
    """GET a resource and print the JSON response."""
    _run_request(HttpMethod.GET, path, None, config_file, max_concurrent, max_retries, log_level)

@app.command()
def post(
    path: PathArgument,
    data: DataOption = None,
    config_file: ConfigFileOption = DEFAULT_CONFIG_FILE,
    max_concurrent: MaxConcurrentOption = None,
    max_retries: MaxRetriesOption = None,
    log_level: LogLevelOption = None,
):
    """POST a JSON body to a resource."""
    _run_request(HttpMethod.POST, path, parse_body(data), config_file, max_concurrent, max_retries, log_level)

@app.command()
def put(
    path: PathArgument,
    data: DataOption = None,
    config_file: ConfigFileOption = DEFAULT_CONFIG_FILE,
    max_concurrent: MaxConcurrentOption = None,
    max_retries: MaxRetriesOption = None,
    log_level: LogLevelOption = None,
):
    """PUT a JSON body to a resource."""
    _run_request(HttpMethod.PUT, path, parse_body(data), config_file, max_concurrent, max_retries, log_level)

@app.command()
def delete(
    path: PathArgument,
    config_file: ConfigFileOption = DEFAULT_CONFIG_FILE,
    max_concurrent: MaxConcurrentOption = None,
    max_retries: MaxRetriesOption = None,
    log_level: LogLevelOption = None,
):
    """DELETE a resource."""
    _run_request(HttpMethod.DELETE, path, None, config_file, max_concurrent, max_retries, log_level)

@app.command(name="show-config")
def show_config(
    config_file: ConfigFileOption = DEFAULT_CONFIG_FILE,
):
    """Show the effective configuration (access token masked)."""
    dependencies = create_dependencies(config_file=config_file, require_credentials=False)
    dependencies['ui'].display_settings(describe_settings())

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
