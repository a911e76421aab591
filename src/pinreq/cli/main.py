"""
pinreq CLI — `pinreq` command.

Commands:
  pinreq request <resource-id> -C <channel>...   Sign and send a pin request
  pinreq listen -C <channel>... | --all          Follow channels, verify requests
  pinreq gen-matrix                              Log in and generate a Matrix channel entry
  pinreq keygen                                  Create a local signing key
"""

import asyncio
import logging
import os

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.markup import escape
except ImportError:
    raise SystemExit("CLI requires extras: pip install pinreq[cli]")

from pinreq import __version__
from pinreq.channel import ChannelSettings
from pinreq.config import DEFAULT_CONFIG_FILE, PinreqConfig, load_config
from pinreq.errors import PinreqError

console = Console()


def _setup_logging() -> None:
    level = os.environ.get("PINREQ_LOG", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_config(ctx: click.Context) -> PinreqConfig:
    return load_config(ctx.obj["config_file"])


def _run(coro):
    try:
        return asyncio.run(coro)
    except PinreqError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1)


def _select_channels(cfg: PinreqConfig, channels: tuple[str, ...], use_all: bool) -> list[ChannelSettings]:
    names = [n.strip() for c in channels for n in c.split(",") if n.strip()]
    if not names and not use_all:
        raise click.UsageError("Name at least one channel with -C, or pass --all")
    return cfg.registry().resolve(None if use_all else names)


@click.group()
@click.version_option(__version__)
@click.option("-c", "--config", "config_file", default=DEFAULT_CONFIG_FILE, show_default=True,
              help="Config file to use in this run")
@click.pass_context
def main(ctx: click.Context, config_file: str):
    """pinreq — authenticated IPFS pin requests over Matrix."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file


# Register subcommands from separate modules
from pinreq.cli.request import request_cmd
from pinreq.cli.listen import listen_cmd
from pinreq.cli.provision import gen_matrix_cmd, keygen_cmd

main.add_command(request_cmd)
main.add_command(listen_cmd)
main.add_command(gen_matrix_cmd)
main.add_command(keygen_cmd)


if __name__ == "__main__":
    main()
