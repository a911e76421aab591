"""CLI: pinreq request <resource-id>"""

import logging

import click
from rich.console import Console
from rich.markup import escape

from pinreq.envelope import sign
from pinreq.models.message import Pin

console = Console()
logger = logging.getLogger(__name__)


def _helpers():
    from pinreq.cli import main
    return main


@click.command("request")
@click.argument("resource_id")
@click.option("-C", "--channel", "channels", multiple=True, help="Channel name(s), comma-separated")
@click.option("-a", "--all", "use_all", is_flag=True, help="Use all configured channels")
@click.pass_context
def request_cmd(ctx: click.Context, resource_id: str, channels: tuple[str, ...], use_all: bool):
    """Send a signed pin request for RESOURCE_ID to the selected channels."""
    m = _helpers()

    async def _request():
        cfg = m._load_config(ctx)
        selected = m._select_channels(cfg, channels, use_all)
        envelope = sign(Pin(resource_id), cfg.signer())
        live = [s.to_channel() for s in selected]
        logger.debug("Sending %r", envelope)
        try:
            for channel in live:
                with console.status(f"Sending to {escape(channel.name)}..."):
                    await channel.send(envelope)
                console.print(f"[green]{escape(f'{channel.name}: requested a pin for {resource_id}')}[/green]")
        finally:
            for channel in live:
                await channel.close()

    m._run(_request())
