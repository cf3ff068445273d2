"""Main entry point for the auracli application.

Sets up the Typer CLI application, performs dependency injection (Composition
Root) once per process in the main callback, and delegates execution to the
CommandHandler. The wired dependencies travel through ``ctx.obj``.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Dict, Optional

import typer
from rich.console import Console
from typing_extensions import Annotated

# --- Core Layer ---
from auracli.core.command_handler import CommandHandler
from auracli.core.services.diagnostics_service import DiagnosticsService
from auracli.core.services.lead_service import LeadService

# --- Domain Layer ---
from auracli.domain.models.errors import ConfigurationError

# --- Infrastructure Layer ---
from auracli.infrastructure.ai.gemini_client import DEFAULT_MORPH_MONTHS, DEFAULT_MORPH_PROTOCOL, GeminiClient
from auracli.infrastructure.cli.display import ConsoleDisplay
from auracli.infrastructure.config.bootstrap import bootstrap
from auracli.infrastructure.config.settings import DEFAULT_CONFIG_FILE, load_settings
from auracli.infrastructure.filesystem.local_fs import LocalFileSystem
from auracli.infrastructure.http.httpx_transport import HttpxTransport
from auracli.infrastructure.identity.session import ProviderAccessGate, SessionIdentityProvider
from auracli.infrastructure.monitoring.logger_setup import resolve_level, setup_logging
from auracli.infrastructure.resilience.api_retry import ResilientRequestExecutor

logger = logging.getLogger(__name__)


# --- Dependency Injection Container (Manual) ---

def create_dependencies(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Raises:
        ConfigurationError: If the configuration cannot be loaded.
    """
    # 1. Load Configuration First, then logging from it
    settings = load_settings(config_file or DEFAULT_CONFIG_FILE)
    setup_logging(
        log_level=resolve_level(settings.log_level),
        log_format=settings.log_format,
        log_file=settings.log_file,
    )
    logger.info("Configuration and logging initialized.")

    # 2. Explicit system bootstrap (store)
    context = bootstrap(settings)

    dependencies: Dict[str, Any] = {'settings': settings, 'context': context}

    # 3. Infrastructure adapters
    dependencies['ui'] = ConsoleDisplay()
    dependencies['file_system'] = LocalFileSystem()
    dependencies['transport'] = HttpxTransport(timeout=settings.http_timeout)
    dependencies['executor'] = ResilientRequestExecutor(
        transport=dependencies['transport'],
        max_retries=settings.max_retries,
        initial_backoff_ms=settings.initial_backoff_ms,
    )
    dependencies['inference'] = GeminiClient(
        executor=dependencies['executor'],
        api_key=settings.gemini_api_key,
        base_url=settings.ai_base_url,
        analysis_model=settings.analysis_model,
        morph_model=settings.morph_model,
    )
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not found, inference calls will fail.")
    dependencies['identity_provider'] = SessionIdentityProvider()
    dependencies['access_gate'] = ProviderAccessGate(settings.provider_key)

    # 4. Core services
    dependencies['diagnostics_service'] = DiagnosticsService(
        inference=dependencies['inference'],
        file_system=dependencies['file_system'],
    )
    dependencies['lead_service'] = (
        LeadService(store=context.store, app_id=settings.app_id) if context.ready else None
    )

    # 5. Command handler
    dependencies['command_handler'] = CommandHandler(
        context=context,
        diagnostics_service=dependencies['diagnostics_service'],
        lead_service=dependencies['lead_service'],
        identity_provider=dependencies['identity_provider'],
        access_gate=dependencies['access_gate'],
        ui=dependencies['ui'],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="auracli",
    help="auracli: photo diagnostics and lead capture for the Aura med-spa demo.",
    add_completion=False,
)


def run_async(dependencies: Dict[str, Any], coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a handler coroutine, closes the transport, exits 1 on failure."""
    async def runner() -> bool:
        try:
            return await coro
        finally:
            await dependencies['transport'].aclose()

    if not asyncio.run(runner()):
        raise typer.Exit(code=1)


AccessKeyOption = Annotated[
    str,
    typer.Option("--access-key", "-k", prompt=True, hide_input=True, help="Provider access key.")
]
MonthsOption = Annotated[
    int,
    typer.Option("--months", min=1, help="Treatment horizon of the morph image, in months.")
]
ProtocolOption = Annotated[
    str,
    typer.Option("--protocol", help="Treatment protocol the morph image simulates.")
]


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", dir_okay=False, help="Path to a YAML config file.")
    ] = None,
):
    """Loads configuration and wires dependencies once for the invoked command."""
    try:
        ctx.obj = create_dependencies(config)
    except ConfigurationError as e:
        Console(stderr=True).print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def status(ctx: typer.Context):
    """Show the system handshake status."""
    handler: CommandHandler = ctx.obj['command_handler']
    if not handler.handle_status():
        raise typer.Exit(code=1)


@app.command()
def analyze(
    ctx: typer.Context,
    photo: Annotated[Path, typer.Argument(exists=True, file_okay=True, dir_okay=False,
                                          readable=True, resolve_path=True,
                                          help="Photo to analyze.")],
    lead_name: Annotated[Optional[str], typer.Option("--lead-name", help="Save a lead under this name.")] = None,
    lead_email: Annotated[Optional[str], typer.Option("--lead-email", help="Lead contact email.")] = None,
    morph_out: Annotated[Optional[Path], typer.Option("--morph-out", dir_okay=False,
                                                      help="Also write a morph image here.")] = None,
    months: MonthsOption = DEFAULT_MORPH_MONTHS,
    protocol: ProtocolOption = DEFAULT_MORPH_PROTOCOL,
):
    """Analyze a photo and optionally capture a lead."""
    handler: CommandHandler = ctx.obj['command_handler']
    run_async(ctx.obj, handler.handle_analyze(
        str(photo), lead_name, lead_email, str(morph_out) if morph_out else None, months, protocol
    ))


@app.command()
def morph(
    ctx: typer.Context,
    photo: Annotated[Path, typer.Argument(exists=True, file_okay=True, dir_okay=False,
                                          readable=True, resolve_path=True,
                                          help="Photo to transform.")],
    output: Annotated[Path, typer.Option("--output", "-o", dir_okay=False, help="Where to write the image.")],
    months: MonthsOption = DEFAULT_MORPH_MONTHS,
    protocol: ProtocolOption = DEFAULT_MORPH_PROTOCOL,
):
    """Generate a simulated post-treatment image."""
    handler: CommandHandler = ctx.obj['command_handler']
    run_async(ctx.obj, handler.handle_morph(str(photo), str(output), months, protocol))


@app.command()
def leads(
    ctx: typer.Context,
    access_key: AccessKeyOption,
    watch: Annotated[bool, typer.Option("--watch", "-w", help="Keep the list live until Ctrl+C.")] = False,
    interval: Annotated[float, typer.Option("--interval", min=0.1, help="Seconds between store checks.")] = 2.0,
):
    """List captured leads, newest first (provider access required)."""
    handler: CommandHandler = ctx.obj['command_handler']
    try:
        run_async(ctx.obj, handler.handle_list_leads(access_key, watch=watch, interval=interval))
    except KeyboardInterrupt:
        logger.info("Stopped watching leads.")


@app.command(name="lead-status")
def lead_status(
    ctx: typer.Context,
    lead_id: Annotated[str, typer.Argument(help="Lead document id.")],
    new_status: Annotated[str, typer.Argument(metavar="STATUS", help="e.g. 'contacted', 'booked'.")],
    access_key: AccessKeyOption,
):
    """Update the status of a lead (provider access required)."""
    handler: CommandHandler = ctx.obj['command_handler']
    run_async(ctx.obj, handler.handle_lead_status(access_key, lead_id, new_status))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
