"""
Generate an RSA keypair for signing access tokens with RS256.

Writes <output-dir>/private.pem and <output-dir>/public.pem (default
``keys/``, matching JWT_PRIVATE_KEY_PATH / JWT_PUBLIC_KEY_PATH). Without
these files the API signs access tokens with HS256 and SECRET_KEY.

Usage:
    python scripts/generate_keys.py [--output-dir keys] [--key-size 2048] [--force]
"""

import argparse
import os
import sys
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def build_keypair(key_size: int = 2048) -> tuple[bytes, bytes]:
    """Return ``(private_pem, public_pem)`` for a fresh RSA key."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


def write_keypair(output_dir: Path, key_size: int, force: bool) -> None:
    private_path = output_dir / "private.pem"
    public_path = output_dir / "public.pem"
    if not force and (private_path.exists() or public_path.exists()):
        sys.exit(f"Keys already exist in {output_dir.resolve()}; pass --force to replace them.")

    output_dir.mkdir(parents=True, exist_ok=True)
    private_pem, public_pem = build_keypair(key_size)
    private_path.write_bytes(private_pem)
    private_path.chmod(0o600)
    public_path.write_bytes(public_pem)

    print("RSA keypair generated:")
    print(f"  Private key: {private_path.resolve()}")
    print(f"  Public key:  {public_path.resolve()}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--output-dir", default="keys")
    parser.add_argument("--key-size", type=int, default=2048)
    parser.add_argument("--force", action="store_true")
    args = parser.parse_args()

    # Paths are relative to the project root
    os.chdir(Path(__file__).resolve().parent.parent)
    write_keypair(Path(args.output_dir), args.key_size, args.force)


if __name__ == "__main__":
    main()
