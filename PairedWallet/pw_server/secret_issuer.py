"""
One-time operator secret for INCOMING nodes.

The secret is an argon2id digest of the configured salt string. The argon2
salt is itself derived from that string (BLAKE2b, 16 bytes), so the same
settings always produce the same secret while still costing ``rounds``
argon2 passes to compute.
"""

import asyncio

import nacl.exceptions
import nacl.hash
import nacl.pwhash
from nacl.encoding import HexEncoder, RawEncoder

from PairedWallet.pw_shared import config
from PairedWallet.pw_shared.errors import SecretIssueError


class SecretIssuer:
    def __init__(self, memlimit: int = nacl.pwhash.argon2id.MEMLIMIT_INTERACTIVE):
        self.memlimit = memlimit

    def _argon_salt(self, salt: str) -> bytes:
        return nacl.hash.blake2b(
            salt.encode("utf-8"),
            digest_size=nacl.pwhash.argon2id.SALTBYTES,
            encoder=RawEncoder,
        )

    def derive(self, salt: str, rounds: int) -> str:
        if rounds < nacl.pwhash.argon2id.OPSLIMIT_MIN:
            raise SecretIssueError(f"rounds must be >= {nacl.pwhash.argon2id.OPSLIMIT_MIN}")
        try:
            digest = nacl.pwhash.argon2id.kdf(
                config.SECRET_BYTES,
                salt.encode("utf-8"),
                self._argon_salt(salt),
                opslimit=rounds,
                memlimit=self.memlimit,
                encoder=HexEncoder,
            )
        except (nacl.exceptions.CryptoError, ValueError, TypeError) as e:
            raise SecretIssueError(str(e))
        return digest.decode("ascii")

    async def issue_secret(self, salt: str, rounds: int) -> str:
        return await asyncio.to_thread(self.derive, salt, rounds)
