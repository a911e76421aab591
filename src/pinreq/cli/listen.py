"""CLI: pinreq listen"""

import asyncio
import logging

import click
from rich.console import Console
from rich.markup import escape

from pinreq.channel import ReqChannel
from pinreq.config import PinreqConfig, save_config
from pinreq.errors import PinreqError
from pinreq.handler import RequestHandler
from pinreq.pinning import IpfsPinner
from pinreq.signing import Valid
from pinreq.transport.matrix import MatrixChannel

console = Console()
logger = logging.getLogger(__name__)


def _helpers():
    from pinreq.cli import main
    return main


async def _follow(
    channel: ReqChannel,
    handler: RequestHandler,
    cfg: PinreqConfig,
    config_file: str,
    save_cursor: bool,
) -> bool:
    """Process one channel until it fails; False once it has stopped on an error.

    A failure ends this channel only, the other channels keep listening.
    """
    try:
        async for batch in channel.listen():
            logger.info("%s: got %d new messages", channel.name, len(batch))
            for kind, outcome in await handler.handle(batch):
                who = outcome.signer if isinstance(outcome, Valid) else f"untrusted ({outcome.reason})"
                console.print(f"[cyan]{escape(channel.name)}[/cyan] {escape(f'{kind!r} from {who}')}")
            if save_cursor and isinstance(channel, MatrixChannel):
                settings = channel.settings.model_copy(update={"since": channel.cursor})
                cfg.replace_channel(settings)
                save_config(config_file, cfg)
    except PinreqError as e:
        logger.debug("%s: stopped", channel.name, exc_info=True)
        console.print(f"[red]{escape(channel.name)}: {escape(str(e))}[/red]")
        return False
    return True


@click.command("listen")
@click.option("-C", "--channel", "channels", multiple=True, help="Channel name(s), comma-separated")
@click.option("-a", "--all", "use_all", is_flag=True, help="Use all configured channels")
@click.option("--pin", is_flag=True, help="Pin validly signed requests on the local IPFS daemon")
@click.option("--save-cursor", is_flag=True, help="Persist sync progress to the config file")
@click.pass_context
def listen_cmd(ctx: click.Context, channels: tuple[str, ...], use_all: bool, pin: bool, save_cursor: bool):
    """Listen for pin requests and other messages on the selected channels."""
    m = _helpers()

    async def _listen() -> list[str]:
        cfg = m._load_config(ctx)
        selected = m._select_channels(cfg, channels, use_all)
        signer = cfg.signer()
        verifier = cfg.verifier(signer)
        live = [s.to_channel() for s in selected]
        pinner = IpfsPinner(cfg.ipfs_api) if pin else None
        console.print(f"[dim]Listening on {escape(', '.join(c.name for c in live))} (Ctrl+C to exit)[/dim]")
        try:
            finished = await asyncio.gather(*(
                _follow(c, RequestHandler(c, verifier, signer, pinner), cfg, ctx.obj["config_file"], save_cursor)
                for c in live
            ))
        finally:
            for channel in live:
                await channel.close()
            if pinner is not None:
                await pinner.close()
        return [c.name for c, ok in zip(live, finished) if not ok]

    try:
        failed = m._run(_listen())
    except KeyboardInterrupt:
        return
    if failed:
        raise SystemExit(1)
