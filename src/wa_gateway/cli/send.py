"""CLI: wa-gateway send"""

import json
from typing import Optional

import click

from wa_gateway.errors import GatewayError, ValidationError
from wa_gateway.gateway import Gateway
from wa_gateway.validation import ensure_valid_message, sanitize_input


def _helpers():
    from wa_gateway.cli import main
    return main


@click.command("send")
@click.argument("address")
@click.argument("message")
@click.option("-c", "--country-code", default=None, help="Country code for local numbers")
@click.option("--timeout", default=None, type=float, help="Seconds to wait for the client to be ready")
@click.option("--json-output", "--json", is_flag=True)
@click.pass_context
def send_cmd(ctx: click.Context, address: str, message: str, country_code: Optional[str],
             timeout: Optional[float], json_output: bool):
    """Send a one-shot message to a phone number."""
    helpers = _helpers()
    config = helpers._load_config(ctx)
    address = sanitize_input(address)
    message = sanitize_input(message)
    try:
        ensure_valid_message(message, config.max_message_length)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="MESSAGE")
    helpers._setup_logging("WARNING" if json_output else config.log_level)
    console = helpers.console

    async def _send():
        gateway = Gateway(config)
        try:
            await gateway.start()
            with console.status("Waiting for WhatsApp client..."):
                await gateway.session.wait_until_ready(timeout)
            result = await gateway.session.send_direct(address, message, country_code)
        except GatewayError as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        finally:
            await gateway.close()

        if json_output:
            click.echo(json.dumps(result.model_dump(), indent=2))
        elif result.success:
            console.print(f"[green]Sent to {result.to} (id {result.id})[/green]")
            if result.note:
                console.print(f"[yellow]{result.note}[/yellow]")
        else:
            console.print(f"[red]Send failed: {result.error}[/red]")
        if not result.success:
            raise SystemExit(1)

    helpers._run(_send())
