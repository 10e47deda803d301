"""Provision the claimant/reconciler key pair."""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from rich.console import Console
from rich.traceback import install as install_rich_traceback

from vpnDns.logging_config import get_logger

console = Console()
logger = get_logger("keygen")

PRIVATE_KEY_NAME = "private.pem"
PUBLIC_KEY_NAME = "public.pem"


def generate_key_pair(directory: str | Path, overwrite: bool = False) -> Tuple[Path, Path]:
    """
    Write a new P-256 key pair into ``directory``.

    The private key is PKCS#8 PEM, unencrypted, mode 0600; it belongs on the
    claimant host only. The public key is SubjectPublicKeyInfo PEM and is
    what the reconciler loads at startup.

    Raises:
        FileExistsError: if either file exists and ``overwrite`` is False
    """
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    private_path = out_dir / PRIVATE_KEY_NAME
    public_path = out_dir / PUBLIC_KEY_NAME

    if not overwrite:
        for path in (private_path, public_path):
            if path.exists():
                raise FileExistsError(f"Refusing to overwrite existing key {path}")

    private_key = ec.generate_private_key(ec.SECP256R1())
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    fd = os.open(private_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    # O_CREAT only applies the mode to new files
    os.chmod(private_path, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(private_pem)
    public_path.write_bytes(public_pem)

    logger.info(
        "Generated key pair",
        extra={"path": str(out_dir), "outcome": "success"},
    )
    return private_path, public_path


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate the vpnDns signing key pair.")
    parser.add_argument("--dir", default="keys", help="Output directory (default: keys)")
    parser.add_argument("--force", action="store_true", help="Overwrite existing keys")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    install_rich_traceback()
    args = parse_args(argv)
    try:
        private_path, public_path = generate_key_pair(args.dir, overwrite=args.force)
    except FileExistsError as exc:
        console.print(f"[red]{exc}[/red] (use --force to replace it)")
        return 1
    console.print(f"[green]Private key[/green] {private_path} (keep on the claimant host)")
    console.print(f"[green]Public key[/green]  {public_path} (install on the reconciler)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
