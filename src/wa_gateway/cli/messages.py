"""CLI: wa-gateway messages, wa-gateway config"""

import json
from datetime import datetime

import click
from rich.table import Table

from wa_gateway.store import MessageStore


def _helpers():
    from wa_gateway.cli import main
    return main


@click.command("messages")
@click.option("--limit", default=20, type=int)
@click.option("--json-output", "--json", is_flag=True)
@click.pass_context
def messages_cmd(ctx: click.Context, limit: int, json_output: bool):
    """List persisted messages, newest first."""
    helpers = _helpers()
    config = helpers._load_config(ctx)
    store = MessageStore(config.database_path)
    try:
        records = store.recent(limit)
        total = store.count()
    finally:
        store.close()

    if json_output:
        click.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return
    table = Table(title=f"Messages ({total} stored)")
    table.add_column("Time")
    table.add_column("From", style="bold")
    table.add_column("Type")
    table.add_column("Body")
    table.add_column("Replied")
    for r in records:
        table.add_row(
            datetime.fromtimestamp(r.sent_at).strftime("%Y-%m-%d %H:%M"),
            r.author_display_name or r.from_address,
            r.type,
            r.body[:60],
            "yes" if r.processed else "",
        )
    helpers.console.print(table)


@click.command("config")
@click.pass_context
def config_cmd(ctx: click.Context):
    """Show the effective configuration."""
    config = _helpers()._load_config(ctx)
    click.echo(config.model_dump_json(indent=2))
