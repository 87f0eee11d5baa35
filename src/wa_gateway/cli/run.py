"""CLI: wa-gateway run"""

import asyncio
import signal
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from wa_gateway.gateway import Gateway
from wa_gateway.models.session import AuthArtifact, SessionState
from wa_gateway.responders import load_responders


def _helpers():
    from wa_gateway.cli import main
    return main


def _show_state(state: SessionState, artifact: Optional[AuthArtifact]) -> None:
    console = _helpers().console
    if state is SessionState.AWAITING_SCAN and artifact is not None:
        console.print(Panel(
            artifact.terminal or artifact.payload,
            title="Scan this QR code with WhatsApp",
            expand=False,
        ))
    elif state is SessionState.READY:
        console.print("[green]WhatsApp client is ready.[/green]")
    elif state is SessionState.DISCONNECTED:
        console.print("[yellow]Disconnected.[/yellow]")


@click.command("run")
@click.option("--responders", "responders_file", type=click.Path(exists=True, path_type=Path), default=None,
              help="JSON file of auto-responder rules")
@click.pass_context
def run_cmd(ctx: click.Context, responders_file: Optional[Path]):
    """Connect and process messages until interrupted."""
    helpers = _helpers()
    config = helpers._load_config(ctx)
    helpers._setup_logging(config.log_level)
    console = helpers.console

    async def _serve():
        gateway = Gateway(config)
        if responders_file:
            ids = load_responders(gateway.responders, responders_file)
            console.print(f"[dim]Loaded {len(ids)} auto-responder(s)[/dim]")
        gateway.session.on_state_change(_show_state)

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                pass

        try:
            await gateway.start()
            await stop.wait()
        finally:
            console.print("[dim]Shutting down...[/dim]")
            try:
                await asyncio.wait_for(gateway.close(), timeout=config.shutdown_timeout)
            except asyncio.TimeoutError:
                console.print("[red]Forced shutdown after timeout[/red]")
                raise SystemExit(1)

    helpers._run(_serve())
