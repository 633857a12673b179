"""
Bootstrap orchestrator: brings both wallets up and provisions the node.

The run is a linear finite-state machine. Every handler performs one stage
and returns the next Stage; failures are caught inside the stage that
produced them and turned either into a recovery stage or into ABORTED.

    INIT ──(encryption off)──────────────────────────────┐
      │                                                  │
      ▼                                                  ▼
    UNLOCK_PRIMARY ⇄ ENCRYPT_PRIMARY / walletlock     KEY_PAIR
      ▼                                                  ▲
    UNLOCK_SECONDARY ⇄ ENCRYPT_SECONDARY / walletlock ───┘
      ▼
    KEY_PAIR → PROVISION_PRIMARY → PROVISION_SECONDARY → PROVISION_HOLDING
                                                            │
                              INCOMING: ISSUE_SECRET ◄──────┤
                                          │                 │ OUTGOING
                                          ▼                 ▼
                                       COMPLETE          COMPLETE

Unlock error codes:
    -15 wallet not encrypted        → encryptwallet once, then unlock again
    -17 already unlocked / state    → walletlock, then unlock again
    anything else                   → ABORTED

There is no rollback. A node left half-bootstrapped is fixed by running the
whole bootstrap again; every stage is safe to repeat.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx
import redis

from PairedWallet.pw_shared import config
from PairedWallet.pw_shared.console import Console
from PairedWallet.pw_shared.errors import (
    EventLogUnavailableError,
    KeyPairError,
    RpcError,
    SecretIssueError,
)
from PairedWallet.pw_shared.key_pair import KeyPairManager
from PairedWallet.pw_shared.settings import Settings, WalletEndpoint
from PairedWallet.pw_shared.types import BootstrapReport, ErrorKind, Role
from PairedWallet.pw_rpc.daemon_client import DaemonClient, classify_error
from PairedWallet.pw_server.address_pool import AddressProvisioner
from PairedWallet.pw_server.event_log import EventLog
from PairedWallet.pw_server.secret_issuer import SecretIssuer


class Stage(str, Enum):
    INIT                = "INIT"
    UNLOCK_PRIMARY      = "UNLOCK_PRIMARY"
    ENCRYPT_PRIMARY     = "ENCRYPT_PRIMARY"
    UNLOCK_SECONDARY    = "UNLOCK_SECONDARY"
    ENCRYPT_SECONDARY   = "ENCRYPT_SECONDARY"
    KEY_PAIR            = "KEY_PAIR"
    PROVISION_PRIMARY   = "PROVISION_PRIMARY"
    PROVISION_SECONDARY = "PROVISION_SECONDARY"
    PROVISION_HOLDING   = "PROVISION_HOLDING"
    ISSUE_SECRET        = "ISSUE_SECRET"
    COMPLETE            = "COMPLETE"
    ABORTED             = "ABORTED"


TERMINAL_STAGES = {Stage.COMPLETE, Stage.ABORTED}


@dataclass(frozen=True)
class BootstrapContext:
    """Everything one bootstrap run needs, built once before the run."""
    settings:       Settings
    primary:        DaemonClient
    secondary:      DaemonClient
    key_manager:    KeyPairManager
    provisioner:    AddressProvisioner
    secret_issuer:  SecretIssuer
    event_log:      Optional[EventLog] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        redis_client: Optional[redis.Redis] = None,
        http: Optional[httpx.AsyncClient] = None,
    ) -> "BootstrapContext":
        role = settings.role.value
        return cls(
            settings=settings,
            primary=DaemonClient("primary", settings.primary, http=http),
            secondary=DaemonClient("secondary", settings.secondary, http=http),
            key_manager=KeyPairManager(settings.private.key_folders, settings.key_strength),
            provisioner=AddressProvisioner(role, redis_client),
            secret_issuer=SecretIssuer(),
            event_log=EventLog(redis_client, role) if redis_client is not None else None,
        )

    async def close(self) -> None:
        await self.primary.close()
        await self.secondary.close()


@dataclass
class _WalletSlot:
    """Per-run bookkeeping for one wallet's unlock loop."""
    label:             str
    client:            DaemonClient
    endpoint:          WalletEndpoint
    unlock_stage:      Stage
    encrypt_stage:     Stage
    next_stage:        Stage
    encrypt_attempts:  int = 0
    lock_retries:      int = 0


class BootstrapOrchestrator:
    def __init__(self, ctx: BootstrapContext):
        self.ctx = ctx
        settings = ctx.settings

        primary = _WalletSlot(
            label="primary",
            client=ctx.primary,
            endpoint=settings.primary,
            unlock_stage=Stage.UNLOCK_PRIMARY,
            encrypt_stage=Stage.ENCRYPT_PRIMARY,
            next_stage=Stage.UNLOCK_SECONDARY,
        )
        secondary = _WalletSlot(
            label="secondary",
            client=ctx.secondary,
            endpoint=settings.secondary,
            unlock_stage=Stage.UNLOCK_SECONDARY,
            encrypt_stage=Stage.ENCRYPT_SECONDARY,
            next_stage=Stage.KEY_PAIR,
        )
        self._slots = (primary, secondary)

        self._handlers = {
            Stage.INIT:                self._init,
            Stage.UNLOCK_PRIMARY:      lambda: self._unlock(primary),
            Stage.ENCRYPT_PRIMARY:     lambda: self._encrypt(primary),
            Stage.UNLOCK_SECONDARY:    lambda: self._unlock(secondary),
            Stage.ENCRYPT_SECONDARY:   lambda: self._encrypt(secondary),
            Stage.KEY_PAIR:            self._key_pair,
            Stage.PROVISION_PRIMARY:   self._provision_primary,
            Stage.PROVISION_SECONDARY: self._provision_secondary,
            Stage.PROVISION_HOLDING:   self._provision_holding,
            Stage.ISSUE_SECRET:        self._issue_secret,
        }
        self._failure: Optional[str] = None

    async def run(self) -> BootstrapReport:
        stage = Stage.INIT
        visited: list[str] = []
        self._failure = None
        for slot in self._slots:
            slot.encrypt_attempts = 0
            slot.lock_retries = 0

        while stage not in TERMINAL_STAGES:
            visited.append(stage.value)
            stage = await self._handlers[stage]()

        if stage is Stage.COMPLETE:
            Console.success("everything is configured")

        return BootstrapReport(
            success=stage is Stage.COMPLETE,
            final_stage=visited[-1],
            visited=visited,
            failure=self._failure,
        )

    # ─── Failure sink ───

    def _abort(self, msg: str, err: Optional[Exception] = None, log_code: Optional[str] = None) -> Stage:
        details = (err,) if err is not None else ()
        Console.error(msg, *details)
        detail = f"{msg}: {err}" if err is not None else msg
        self._failure = detail

        if log_code is not None and self.ctx.event_log is not None:
            try:
                self.ctx.event_log.write_log(log_code, detail)
            except EventLogUnavailableError as e:
                Console.error("failed to write structured log", e)

        return Stage.ABORTED

    # ─── S0 ───

    async def _init(self) -> Stage:
        settings = self.ctx.settings
        Console.status(f"bootstrapping {settings.role.value} node")
        if not settings.encrypted_wallet:
            Console.status("wallet encryption disabled, skipping unlock")
            return Stage.KEY_PAIR
        return Stage.UNLOCK_PRIMARY

    # ─── S1 / S2 ───

    async def _unlock(self, slot: _WalletSlot) -> Stage:
        try:
            await slot.client.wallet_passphrase(
                slot.endpoint.wallet_passphrase,
                slot.endpoint.unlock_duration,
            )
        except RpcError as e:
            return await self._recover_unlock(slot, e)

        Console.status(f"{slot.label} wallet unlock successful")
        return slot.next_stage

    async def _recover_unlock(self, slot: _WalletSlot, err: RpcError) -> Stage:
        failure = classify_error(err)

        if failure.kind is ErrorKind.NOT_ENCRYPTED:
            if slot.encrypt_attempts >= config.MAX_ENCRYPT_ATTEMPTS:
                return self._abort(
                    f"{slot.label} wallet still unencrypted after encryptwallet",
                    err,
                    config.LOG_CODE_WALLET,
                )
            return slot.encrypt_stage

        if failure.kind is ErrorKind.LOCKED_PASSPHRASE:
            if slot.lock_retries >= config.MAX_LOCK_RETRIES:
                return self._abort(
                    f"{slot.label} wallet unlock retried {slot.lock_retries} times",
                    err,
                    config.LOG_CODE_WALLET,
                )
            slot.lock_retries += 1
            try:
                await slot.client.wallet_lock()
            except RpcError as lock_err:
                return self._abort(f"failed {slot.label} walletlock", lock_err, config.LOG_CODE_WALLET)
            return slot.unlock_stage

        stage = self._abort(f"failed {slot.label} walletpassphrase", err, config.LOG_CODE_WALLET)
        if slot.encrypt_attempts:
            # encryptwallet stops most daemons; the unlock cannot succeed until a restart
            Console.success(f"please restart the {slot.label} daemon and re-run this script")
        return stage

    async def _encrypt(self, slot: _WalletSlot) -> Stage:
        slot.encrypt_attempts += 1
        try:
            await slot.client.encrypt_wallet(slot.endpoint.wallet_passphrase)
        except RpcError as e:
            return self._abort(f"failed {slot.label} encryptwallet", e, config.LOG_CODE_WALLET)

        Console.status(f"{slot.label} wallet encrypted with configured passphrase")
        return slot.unlock_stage

    # ─── S3 ───

    async def _key_pair(self) -> Stage:
        try:
            await self.ctx.key_manager.ensure_key_pair()
        except KeyPairError as e:
            return self._abort("key pair verification failed", e, config.LOG_CODE_KEYPAIR)
        return Stage.PROVISION_PRIMARY

    # ─── S4 – S6 ───

    async def _provision(self, account: str, client: DaemonClient, max_addresses: int, what: str) -> bool:
        ok = await self.ctx.provisioner.provision(account, client, max_addresses)
        if not ok:
            self._abort(f"failed to generate {what} addresses", log_code=config.LOG_CODE_ADDRESSES)
        return ok

    async def _provision_primary(self) -> Stage:
        s = self.ctx.settings
        if not await self._provision(s.account_name, self.ctx.primary, s.private.max_addresses, "primary"):
            return Stage.ABORTED
        return Stage.PROVISION_SECONDARY

    async def _provision_secondary(self) -> Stage:
        s = self.ctx.settings
        if not await self._provision(s.account_name, self.ctx.secondary, s.private.max_addresses, "secondary"):
            return Stage.ABORTED
        return Stage.PROVISION_HOLDING

    async def _provision_holding(self) -> Stage:
        s = self.ctx.settings
        # INCOMING keeps custody on the primary chain, OUTGOING on the secondary
        client = self.ctx.primary if s.role is Role.INCOMING else self.ctx.secondary
        if not await self._provision(s.holding_account, client, s.private.max_holding, f"holding {client.name}"):
            return Stage.ABORTED

        if s.role is Role.INCOMING:
            return Stage.ISSUE_SECRET
        return Stage.COMPLETE

    # ─── S7 ───

    async def _issue_secret(self) -> Stage:
        options = self.ctx.settings.wallets.secret_options
        try:
            secret = await self.ctx.secret_issuer.issue_secret(options.salt, options.salt_rounds)
        except SecretIssueError as e:
            return self._abort("failed to generate secret", e, config.LOG_CODE_SECRET)

        Console.status("generated secret:", secret[:config.SECRET_DISPLAY_CHARS])
        return Stage.COMPLETE
