"""CLI entry point for the GameStream host."""

from pathlib import Path

import click

from gamestream import __version__
from gamestream.config import load_config
from gamestream.logging import setup_logging


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None, log_level: str | None) -> None:
    """GameStream host - pair Moonlight clients with this machine."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config)
    ctx.obj["logger"] = setup_logging(ctx.obj["config"], level=log_level)


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"gamestream version {__version__}")


@main.group()
def identity() -> None:
    """Host certificate commands."""
    pass


@identity.command("generate")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing identity")
@click.pass_context
def identity_generate(ctx: click.Context, force: bool) -> None:
    """Generate the host certificate and private key."""
    from gamestream.identity import HostIdentity, identity_paths

    id_config = ctx.obj["config"].identity
    cert_path, key_path = identity_paths(id_config)

    if (cert_path.exists() or key_path.exists()) and not force:
        click.echo(f"Identity already exists at {cert_path}", err=True)
        click.echo("Use --force to replace it.", err=True)
        raise SystemExit(1)

    host = HostIdentity.generate(
        common_name=id_config.common_name,
        key_size=id_config.key_size,
        valid_days=id_config.valid_days,
    )
    host.save(cert_path, key_path)
    click.echo(f"Certificate: {cert_path}")
    click.echo(f"Private key: {key_path}")


@identity.command("show")
@click.pass_context
def identity_show(ctx: click.Context) -> None:
    """Show the host certificate."""
    from gamestream.errors import ConfigError
    from gamestream.identity import HostIdentity, identity_paths

    cert_path, key_path = identity_paths(ctx.obj["config"].identity)
    if not cert_path.exists():
        click.echo("No host identity. Run: gamestream identity generate", err=True)
        raise SystemExit(1)

    try:
        host = HostIdentity.load(cert_path, key_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    cert = host.certificate
    click.echo(f"Subject:   {cert.subject.rfc4514_string()}")
    click.echo(f"Serial:    {cert.serial_number:x}")
    click.echo(f"Expires:   {cert.not_valid_after_utc.isoformat()}")
    click.echo(f"Signature: {host.cert_signature[:16].hex()}...")


@main.command("derive-key")
@click.argument("pin")
@click.argument("salt_hex")
def derive_key_command(pin: str, salt_hex: str) -> None:
    """Print the pairing key Moonlight derives from PIN and SALT_HEX."""
    from gamestream.pairing.protocol import derive_key

    try:
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        click.echo("Error: salt must be hex", err=True)
        raise SystemExit(1)

    click.echo(derive_key(pin, salt).hex())


@main.command()
@click.pass_context
def pin(ctx: click.Context) -> None:
    """Generate a pairing PIN."""
    from gamestream.crypto import random_pin

    click.echo(random_pin(ctx.obj["config"].pairing.pin_length))
