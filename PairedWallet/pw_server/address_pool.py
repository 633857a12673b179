"""
Receiving-address pools for deposit tracking.

Provisioning only ever tops a pool up: it counts the addresses the daemon
already holds for the account and asks for exactly the deficit. Running it
again against a full pool creates nothing.

When a Redis client is given, every address in the pool is also recorded in
a set (pool:v1:{role}:{account}:{wallet}) that the deposit tracker reads.
"""

from typing import Optional

import redis

from PairedWallet.pw_shared import config
from PairedWallet.pw_shared.console import Console
from PairedWallet.pw_shared.errors import ProvisioningError, RpcError
from PairedWallet.pw_shared.types import PoolStatus
from PairedWallet.pw_rpc.daemon_client import DaemonClient


class AddressProvisioner:
    def __init__(self, role: str, client: Optional[redis.Redis] = None):
        self.role = role
        self.db: Optional[redis.Redis] = client

    def _pool_key(self, account: str, wallet: str) -> str:
        return f"{config.POOL_KEY_PREFIX}:{self.role}:{account}:{wallet}"

    def _record_pool(self, account: str, wallet: str, addresses: list[str]) -> None:
        if self.db is None or not addresses:
            return
        try:
            self.db.sadd(self._pool_key(account, wallet), *addresses)
        except redis.exceptions.RedisError as e:
            raise ProvisioningError(account, wallet, f"address pool store error: {e}")

    def pool_addresses(self, account: str, wallet: str) -> set[str]:
        if self.db is None:
            return set()
        try:
            members = self.db.smembers(self._pool_key(account, wallet))
        except redis.exceptions.RedisError as e:
            raise ProvisioningError(account, wallet, f"address pool store error: {e}")
        return {a.decode() for a in members}

    async def top_up(self, account: str, client: DaemonClient, max_addresses: int) -> PoolStatus:
        """Create addresses until the account holds ``max_addresses``.

        Raises RpcError / ProvisioningError; use provision() for the boolean form.
        """
        existing = await client.get_addresses_by_account(account)
        deficit = max_addresses - len(existing)

        created = []
        for _ in range(max(deficit, 0)):
            created.append(await client.get_new_address(account))

        self._record_pool(account, client.name, existing + created)

        return PoolStatus(
            account=account,
            wallet=client.name,
            existing=len(existing),
            created=len(created),
            target=max_addresses,
        )

    async def provision(self, account: str, client: DaemonClient, max_addresses: int) -> bool:
        try:
            status = await self.top_up(account, client, max_addresses)
        except (RpcError, ProvisioningError) as e:
            Console.error(f"failed to provision {account} addresses on {client.name}", e)
            return False

        Console.status(
            f"{status.account} addresses on {status.wallet}: "
            f"{status.existing} existing, {status.created} created (target {status.target})"
        )
        return True
