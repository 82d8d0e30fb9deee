"""CLI for Compliance Gateway security operations."""
import secrets
import sys

import click

from app.domain.encryption import field_cipher
from app.domain.encryption.field_cipher import EncryptionConfigError
from app.domain.security.sanitizer import sanitize_plain_text, sanitize_text
from app.domain.security.url_safety import is_safe_url, is_valid_file_url


@click.group()
def cli():
    """Compliance Gateway CLI."""
    pass


def _load_cipher():
    try:
        cipher = field_cipher.get_field_cipher()
    except EncryptionConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not cipher.available:
        click.echo("Error: ENCRYPTION_KEY is not set; field encryption is unavailable", err=True)
        sys.exit(1)
    return cipher


@cli.command("generate-salt")
@click.option("--bytes", "num_bytes", default=16, type=int, help="Salt length in bytes (default: 16)")
def generate_salt(num_bytes: int):
    """Print a random hex salt for ENCRYPTION_SALT."""
    click.echo(secrets.token_hex(num_bytes))


@cli.command("encrypt")
@click.argument("value")
def encrypt_value(value: str):
    """Encrypt a single field value with the configured key."""
    cipher = _load_cipher()
    envelope = cipher.encrypt(value)
    if envelope is None:
        click.echo("Error: value could not be encrypted", err=True)
        sys.exit(1)
    click.echo(envelope)


@cli.command("decrypt")
@click.argument("envelope")
def decrypt_value(envelope: str):
    """Decrypt a nonce:tag:payload envelope with the configured key."""
    cipher = _load_cipher()
    plaintext = cipher.decrypt(envelope)
    if plaintext is None:
        click.echo("Error: envelope is malformed, tampered, or encrypted with another key", err=True)
        sys.exit(1)
    click.echo(plaintext)


@cli.command("check-url")
@click.argument("url")
@click.option("--file", "as_file", is_flag=True, help="Validate as a stored document reference instead")
def check_url(url: str, as_file: bool):
    """Check whether a URL passes the SSRF (or file reference) rules."""
    ok = is_valid_file_url(url) if as_file else is_safe_url(url)
    kind = "file URL" if as_file else "server-side fetch"
    if ok:
        click.echo(f"✓ {url} is allowed ({kind})")
    else:
        click.echo(f"✗ {url} is rejected ({kind})")
        sys.exit(1)


@cli.command("sanitize")
@click.argument("text")
@click.option("--plain", is_flag=True, help="Use the aggressive plain-text sanitizer")
def sanitize(text: str, plain: bool):
    """Strip markup from TEXT and print the result."""
    click.echo(sanitize_plain_text(text) if plain else sanitize_text(text))


if __name__ == "__main__":
    cli()
