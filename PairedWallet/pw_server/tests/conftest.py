from typing import Optional

import nacl.pwhash
import pytest

from PairedWallet.pw_shared import config
from PairedWallet.pw_shared.errors import DaemonUnavailableError, RpcError
from PairedWallet.pw_shared.key_pair import KeyPairManager
from PairedWallet.pw_server.address_pool import AddressProvisioner
from PairedWallet.pw_server.event_log import EventLog
from PairedWallet.pw_server.orchestrator import BootstrapContext
from PairedWallet.pw_server.secret_issuer import SecretIssuer


class FakeDaemon:
    """In-memory coin daemon with the wallet state machine of a real one.

    state: "unencrypted" | "locked" | "unlocked"

    walletpassphrase on an unencrypted wallet → -15
    walletpassphrase on an unlocked wallet    → -17
    encryptwallet leaves the wallet locked; with stop_on_encrypt the daemon
    then refuses every call, like a daemon that shuts itself down.
    """

    def __init__(
        self,
        name: str,
        state: str = "locked",
        passphrase: Optional[str] = None,
        *,
        stop_on_encrypt: bool = False,
        unlock_code: Optional[int] = None,
        lock_code: Optional[int] = None,
        encrypt_code: Optional[int] = None,
        address_code: Optional[int] = None,
    ):
        self.name = name
        self.state = state
        self.passphrase = passphrase
        self.stop_on_encrypt = stop_on_encrypt
        self.unlock_code = unlock_code
        self.lock_code = lock_code
        self.encrypt_code = encrypt_code
        self.address_code = address_code
        self.stopped = False
        self.calls: list[str] = []
        self.addresses: dict[str, list[str]] = {}

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if self.stopped:
            raise DaemonUnavailableError(self.name, method, "connection refused")

    async def wallet_passphrase(self, passphrase: str, timeout_seconds: int) -> None:
        self._enter("walletpassphrase")
        if self.unlock_code is not None:
            raise RpcError("walletpassphrase", self.unlock_code, "forced")
        if self.state == "unencrypted":
            raise RpcError("walletpassphrase", config.RPC_WALLET_UNENCRYPTED, "running with an unencrypted wallet")
        if self.state == "unlocked":
            raise RpcError("walletpassphrase", config.RPC_WALLET_WRONG_STATE, "wallet is already unlocked")
        if self.passphrase is not None and passphrase != self.passphrase:
            raise RpcError("walletpassphrase", -14, "the wallet passphrase entered was incorrect")
        self.state = "unlocked"

    async def wallet_lock(self) -> None:
        self._enter("walletlock")
        if self.lock_code is not None:
            raise RpcError("walletlock", self.lock_code, "forced")
        if self.state == "unencrypted":
            raise RpcError("walletlock", config.RPC_WALLET_UNENCRYPTED, "running with an unencrypted wallet")
        self.state = "locked"

    async def encrypt_wallet(self, passphrase: str) -> str:
        self._enter("encryptwallet")
        if self.encrypt_code is not None:
            raise RpcError("encryptwallet", self.encrypt_code, "forced")
        if self.state != "unencrypted":
            raise RpcError("encryptwallet", config.RPC_WALLET_UNENCRYPTED, "running with an encrypted wallet")
        self.state = "locked"
        self.passphrase = passphrase
        if self.stop_on_encrypt:
            self.stopped = True
        return "wallet encrypted; server stopping, restart to run with encrypted wallet"

    async def get_addresses_by_account(self, account: str) -> list[str]:
        self._enter("getaddressesbyaccount")
        if self.address_code is not None:
            raise RpcError("getaddressesbyaccount", self.address_code, "forced")
        return list(self.addresses.get(account, []))

    async def get_new_address(self, account: str) -> str:
        self._enter("getnewaddress")
        pool = self.addresses.setdefault(account, [])
        address = f"{self.name}-{account}-{len(pool)}"
        pool.append(address)
        return address

    async def close(self) -> None:
        pass

    def count(self, method: str) -> int:
        return self.calls.count(method)


@pytest.fixture
def fake_daemon():
    return FakeDaemon


@pytest.fixture
def secret_issuer():
    return SecretIssuer(memlimit=nacl.pwhash.argon2id.MEMLIMIT_MIN)


@pytest.fixture
def build_ctx(redis_client, secret_issuer, fixed_now):
    """Factory: build_ctx(settings, primary, secondary, key_manager=None)."""
    def _build(settings, primary, secondary, key_manager=None):
        if key_manager is None:
            key_manager = KeyPairManager(
                settings.private.key_folders,
                settings.key_strength,
                clock=lambda: fixed_now,
            )
        role = settings.role.value
        return BootstrapContext(
            settings=settings,
            primary=primary,
            secondary=secondary,
            key_manager=key_manager,
            provisioner=AddressProvisioner(role, redis_client),
            secret_issuer=secret_issuer,
            event_log=EventLog(redis_client, role),
        )
    return _build
