"""
JSON-RPC client for an already-running coin daemon.

Only the handful of wallet calls the bootstrap needs are exposed. The daemon
answers RPC errors with a non-2xx status *and* a JSON body carrying the error
object, so the body is parsed before the status is looked at.

    wallet_passphrase(passphrase, timeout)   walletpassphrase
    wallet_lock()                            walletlock
    encrypt_wallet(passphrase)               encryptwallet
    get_addresses_by_account(account)        getaddressesbyaccount
    get_new_address(account)                 getnewaddress
"""

import itertools
from typing import Any, Optional

import httpx

from PairedWallet.pw_shared import config
from PairedWallet.pw_shared.errors import DaemonUnavailableError, RpcError
from PairedWallet.pw_shared.settings import WalletEndpoint
from PairedWallet.pw_shared.types import ErrorKind, RpcFailure


def classify_error(err: RpcError) -> RpcFailure:
    """Map a raw RPC error onto the closed set of kinds the bootstrap handles."""
    if err.code == config.RPC_WALLET_UNENCRYPTED:
        kind = ErrorKind.NOT_ENCRYPTED
    elif err.code == config.RPC_WALLET_WRONG_STATE:
        kind = ErrorKind.LOCKED_PASSPHRASE
    else:
        kind = ErrorKind.FATAL
    return RpcFailure(kind=kind, code=err.code, message=err.rpc_message)


class DaemonClient:
    """Thin async proxy to one wallet daemon."""

    def __init__(
        self,
        name: str,
        endpoint: WalletEndpoint,
        *,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.name = name
        self.endpoint = endpoint
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=config.RPC_TIMEOUT_SECONDS)
        self._ids = itertools.count(1)

    async def call(self, method: str, *params: Any) -> Any:
        payload = {
            "jsonrpc": config.RPC_VERSION,
            "id": f"{method}_{next(self._ids)}",
            "method": method,
            "params": list(params),
        }

        try:
            resp = await self._http.post(
                self.endpoint.url,
                json=payload,
                auth=(self.endpoint.user, self.endpoint.password),
            )
        except httpx.HTTPError as e:
            raise DaemonUnavailableError(self.name, method, str(e))

        try:
            data = resp.json()
        except ValueError:
            raise RpcError(method, None, f"HTTP {resp.status_code}: non-JSON response")

        if not isinstance(data, dict):
            raise RpcError(method, None, f"HTTP {resp.status_code}: response is not a JSON object")

        error = data.get("error")
        if isinstance(error, dict):
            raise RpcError(method, error.get("code"), error.get("message", ""))
        if error:
            raise RpcError(method, None, str(error))
        if resp.status_code != 200:
            raise RpcError(method, None, f"HTTP {resp.status_code}")

        return data.get("result")

    # ── Wallet state ──

    async def wallet_passphrase(self, passphrase: str, timeout_seconds: int) -> None:
        await self.call("walletpassphrase", passphrase, timeout_seconds)

    async def wallet_lock(self) -> None:
        await self.call("walletlock")

    async def encrypt_wallet(self, passphrase: str) -> Any:
        return await self.call("encryptwallet", passphrase)

    # ── Addresses ──

    async def get_addresses_by_account(self, account: str) -> list[str]:
        return list(await self.call("getaddressesbyaccount", account) or [])

    async def get_new_address(self, account: str) -> str:
        return await self.call("getnewaddress", account)

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()
