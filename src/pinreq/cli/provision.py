"""CLI: pinreq gen-matrix, pinreq keygen"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from pinreq.config import DEFAULT_SIGNING_KEY, PinreqConfig, load_config, save_config
from pinreq.errors import PinreqError
from pinreq.signing import encode_public_key, generate_signing_key
from pinreq.transport.matrix import DEFAULT_HOMESERVER, DEFAULT_ROOM_ALIAS, MatrixChannel

console = Console()


def _helpers():
    from pinreq.cli import main
    return main


@click.command("gen-matrix")
@click.option("--save", is_flag=True, help="Add the channel to the config file")
@click.pass_context
def gen_matrix_cmd(ctx: click.Context, save: bool):
    """Log in to Matrix and generate a channel config entry."""
    m = _helpers()

    async def _gen():
        name = click.prompt("Human-readable channel name")
        homeserver = click.prompt("Homeserver URL", default=DEFAULT_HOMESERVER)
        room_alias = click.prompt("Room alias", default=DEFAULT_ROOM_ALIAS)
        backlog = click.prompt("Initial backlog size", default=100, type=int)
        username = click.prompt("Username")

        channel = MatrixChannel.new(name, homeserver, room_alias, backlog)
        try:
            secret = bytearray(click.prompt("Password", hide_input=True).encode("utf-8"))
            with console.status("Logging in..."):
                await channel.login(username, secret)
            with console.status("Resolving room..."):
                room_id = await channel.resolve_room()
        finally:
            await channel.close()
        console.print(f"[green]Logged in, {room_alias} is {room_id}[/green]")

        entry = channel.settings.model_dump(mode="json", exclude_none=True)
        click.echo(json.dumps({"matrix": [entry]}, indent=2))

        if save:
            path = Path(ctx.obj["config_file"])
            cfg = load_config(path) if path.exists() else PinreqConfig()
            cfg.matrix.append(channel.settings)
            cfg.registry()
            save_config(path, cfg)
            console.print(f"[dim]Channel saved to {path}[/dim]")

    m._run(_gen())


@click.command("keygen")
@click.option("--out", "out", default=None, help=f"Key file (default: {DEFAULT_SIGNING_KEY})")
@click.pass_context
def keygen_cmd(ctx: click.Context, out: Optional[str]):
    """Create an Ed25519 signing key and print its public half."""
    if out is None:
        path = Path(ctx.obj["config_file"])
        try:
            out = load_config(path).signing_key if path.exists() else DEFAULT_SIGNING_KEY
        except PinreqError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise SystemExit(1)
    try:
        key = generate_signing_key(out)
    except FileExistsError:
        console.print(f"[red]{out} already exists, not overwriting[/red]")
        raise SystemExit(1)
    console.print(f"[green]Signing key written to {out}[/green]")
    console.print("Share this public key with the people who should trust your requests:")
    click.echo(encode_public_key(key.public_key()))
