"""
Daily RSA key pair used by the rest of the node to exchange deposit data.

One pair exists per UTC calendar day. The file names carry the date bucket
(epoch milliseconds of that day's UTC midnight), so every bootstrap run on the
same day resolves to the same two files:

    {private.path}{bucket}{private.suffix}   PEM private key (PKCS#1)
    {public.path}{bucket}{public.suffix}     PEM public key (SubjectPublicKeyInfo)

The pair is generated only when at least one of the two files is missing. A
complete pair is never regenerated, whether or not it verifies; verification
runs on every call so a corrupted pair is caught every run.
"""

import asyncio
import json
import os
from datetime import datetime, timezone
from typing import Callable, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from PairedWallet.pw_shared import config
from PairedWallet.pw_shared.console import Console
from PairedWallet.pw_shared.errors import KeyPairError
from PairedWallet.pw_shared.settings import KeyFolders
from PairedWallet.pw_shared.types import KeyPairRecord


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def date_bucket(now: datetime) -> int:
    """Epoch milliseconds of the UTC midnight that starts ``now``'s day.

    Naive datetimes are taken to be UTC already.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    midnight = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    return int(midnight.timestamp() * 1000)


def serialize_probe() -> str:
    """Canonical string form of the probe payload (compact JSON, fixed key order)."""
    return json.dumps(config.PROBE_PAYLOAD, separators=(",", ":"))


class KeyPairManager:
    """Resolves, generates and verifies the key pair for the current day."""

    def __init__(
        self,
        key_folders: KeyFolders,
        strength_bits: int,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.key_folders = key_folders
        self.strength_bits = strength_bits
        self._clock = clock or _utc_now

    def key_paths(self, now: Optional[datetime] = None) -> tuple[str, str]:
        """Return (private_path, public_path) for the day containing ``now``."""
        bucket = date_bucket(now if now is not None else self._clock())
        priv = self.key_folders.private
        pub = self.key_folders.public
        return (
            f"{priv.path}{bucket}{priv.suffix}",
            f"{pub.path}{bucket}{pub.suffix}",
        )

    async def ensure_key_pair(self) -> KeyPairRecord:
        """Make sure today's pair exists and round-trips the probe.

        Raises KeyPairError on any filesystem failure or probe mismatch.
        """
        now = self._clock()
        bucket = date_bucket(now)
        priv_path, pub_path = self.key_paths(now)

        generated = False
        if not (os.path.exists(priv_path) and os.path.exists(pub_path)):
            await asyncio.to_thread(self.generate_keys, priv_path, pub_path)
            Console.status("RSA keypairs created")
            generated = True

        await asyncio.to_thread(self.verify_key_pair, priv_path, pub_path)
        Console.status("encryption test passed", serialize_probe())

        return KeyPairRecord(
            date_bucket=bucket,
            private_path=priv_path,
            public_path=pub_path,
            generated=generated,
        )

    def generate_keys(self, priv_path: str, pub_path: str) -> None:
        """Generate a fresh pair and write the private file, then the public file."""
        key = rsa.generate_private_key(
            public_exponent=config.RSA_PUBLIC_EXPONENT,
            key_size=self.strength_bits,
        )
        priv_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        pub_pem = key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

        try:
            with open(priv_path, "w", encoding="ascii") as f:
                f.write(priv_pem.decode("ascii"))
        except OSError as e:
            raise KeyPairError(f"write privKeyFile failed {e}")

        try:
            with open(pub_path, "w", encoding="ascii") as f:
                f.write(pub_pem.decode("ascii"))
        except OSError as e:
            raise KeyPairError(f"write pubKeyFile failed {e}")

    def verify_key_pair(self, priv_path: str, pub_path: str) -> None:
        """Encrypt the probe with the public key, decrypt it with the private key.

        PKCS#1 v1.5 padding on both sides. The decrypted bytes must equal the
        serialized probe exactly.
        """
        probe = serialize_probe().encode("utf-8")

        try:
            with open(pub_path, "rb") as f:
                public_key = serialization.load_pem_public_key(f.read())
            with open(priv_path, "rb") as f:
                private_key = serialization.load_pem_private_key(f.read(), password=None)

            if not isinstance(public_key, rsa.RSAPublicKey) or not isinstance(private_key, rsa.RSAPrivateKey):
                raise KeyPairError("key files do not hold an RSA pair")

            encrypted = public_key.encrypt(probe, padding.PKCS1v15())
            decrypted = private_key.decrypt(encrypted, padding.PKCS1v15())
        except (OSError, ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyPairError(f"failed to encrypt: {e}")

        if decrypted != probe:
            raise KeyPairError(f"failed to decrypt: got {decrypted!r}")
