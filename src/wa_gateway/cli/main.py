"""
wa-gateway CLI — `wa-gateway` command.

Commands:
  wa-gateway run                Connect, show the QR code, process messages
  wa-gateway send <to> <text>   One-shot message
  wa-gateway messages           List persisted messages
  wa-gateway config             Show effective configuration
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install wa-gateway[cli]")

from wa_gateway.config import GatewayConfig

console = Console()


def _load_config(ctx: click.Context) -> GatewayConfig:
    path: Optional[Path] = (ctx.obj or {}).get("config_path")
    return GatewayConfig.load(path)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="JSON config file (default ~/.wa-gateway/config.json)")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path]):
    """wa-gateway — drive a WhatsApp account from the command line."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# Register subcommands from separate modules
from wa_gateway.cli.run import run_cmd
from wa_gateway.cli.send import send_cmd
from wa_gateway.cli.messages import messages_cmd, config_cmd

main.add_command(run_cmd)
main.add_command(send_cmd)
main.add_command(messages_cmd)
main.add_command(config_cmd)


if __name__ == "__main__":
    main()
