import copy
from datetime import datetime, timezone

import fakeredis
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from PairedWallet.pw_shared.key_pair import KeyPairManager
from PairedWallet.pw_shared.settings import parse_settings


TEST_KEY_BITS = 2048
FIXED_NOW = datetime(2024, 3, 15, 13, 45, 12, tzinfo=timezone.utc)


def _endpoint(port: int, passphrase: str) -> dict:
    return {
        "host": "127.0.0.1",
        "port": port,
        "user": "rpcuser",
        "password": "rpcpass",
        "wallet_passphrase": passphrase,
    }


@pytest.fixture
def raw_settings(tmp_path):
    """A complete settings document with key files under tmp_path."""
    keys = tmp_path / "keys"
    keys.mkdir()
    return {
        "global": {"server_type": "INCOMING", "encrypted_wallet": True},
        "INCOMING": {
            "primary": _endpoint(18332, "primary-pass"),
            "secondary": _endpoint(19332, "secondary-pass"),
            "secret_options": {"salt": "incoming-node-salt", "salt_rounds": 2},
        },
        "OUTGOING": {
            "primary": _endpoint(28332, "primary-pass"),
            "secondary": _endpoint(29332, "secondary-pass"),
        },
        "private": {
            "key_folders": {
                "private": {"path": str(keys / "priv_"), "suffix": ".pem"},
                "public": {"path": str(keys / "pub_"), "suffix": ".pub.pem"},
            },
            "encryption_strength": {"INCOMING": TEST_KEY_BITS, "OUTGOING": TEST_KEY_BITS},
            "account": {"INCOMING": "incoming", "OUTGOING": "outgoing", "HOLDING": "holding"},
            "max_addresses": 3,
            "max_holding": 2,
        },
    }


@pytest.fixture
def make_settings(raw_settings):
    """Factory: make_settings(role="OUTGOING", encrypted=False, **private_overrides)."""
    def _make(role: str = "INCOMING", encrypted: bool = True, **private_overrides):
        raw = copy.deepcopy(raw_settings)
        raw["global"]["server_type"] = role
        raw["global"]["encrypted_wallet"] = encrypted
        raw["private"].update(private_overrides)
        return parse_settings(raw)
    return _make


@pytest.fixture
def redis_client():
    r = fakeredis.FakeRedis()
    yield r
    r.flushdb()
    r.close()


@pytest.fixture(scope="session")
def pem_pair():
    """One pre-generated (private_pem, public_pem) pair shared by the session."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=TEST_KEY_BITS)
    priv = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    pub = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return priv, pub


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def key_manager(make_settings):
    settings = make_settings()
    return KeyPairManager(settings.private.key_folders, TEST_KEY_BITS, clock=lambda: FIXED_NOW)


@pytest.fixture
def seed_key_pair(pem_pair):
    """Write the session pair into a manager's paths for its current day."""
    def _seed(manager: KeyPairManager, public_pem: bytes = None):
        priv_path, pub_path = manager.key_paths()
        with open(priv_path, "wb") as f:
            f.write(pem_pair[0])
        with open(pub_path, "wb") as f:
            f.write(public_pem if public_pem is not None else pem_pair[1])
        return priv_path, pub_path
    return _seed
