"""
Settings loading and validation.

The settings file is JSON with four sections:

    global      server_type (INCOMING | OUTGOING), encrypted_wallet
    INCOMING    primary / secondary daemon endpoints, secret_options
    OUTGOING    primary / secondary daemon endpoints
    private     key file templates, key strength per role, account names,
                address pool sizes

Only the section of the configured role is validated; the other role's
section may be absent.
"""

import json
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from PairedWallet.pw_shared import config
from PairedWallet.pw_shared.errors import InvalidRoleError, SettingsValidationError
from PairedWallet.pw_shared.types import Role


# ── Pydantic models ──


class WalletEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    user: str
    password: str
    wallet_passphrase: str
    unlock_duration: int = config.DEFAULT_UNLOCK_SECONDS

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError(f"Invalid port: {v}")
        return v

    @field_validator("host", "user", "wallet_passphrase")
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("unlock_duration")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError(f"Invalid unlock_duration: {v}")
        return v

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"


class SecretOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    salt: str
    salt_rounds: int

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v):
        if not v:
            raise ValueError("salt must not be empty")
        return v

    @field_validator("salt_rounds")
    @classmethod
    def validate_rounds(cls, v):
        if v < 1:
            raise ValueError(f"Invalid salt_rounds: {v}")
        return v


class RoleSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: WalletEndpoint
    secondary: WalletEndpoint
    secret_options: Optional[SecretOptions] = None


class KeyFolder(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    suffix: str


class KeyFolders(BaseModel):
    model_config = ConfigDict(frozen=True)

    private: KeyFolder
    public: KeyFolder


class PrivateSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    key_folders: KeyFolders
    encryption_strength: dict[str, int]
    account: dict[str, str]
    max_addresses: int
    max_holding: int

    @field_validator("encryption_strength")
    @classmethod
    def validate_strength(cls, v):
        for role in config.VALID_ROLES:
            bits = v.get(role)
            if bits is None:
                raise ValueError(f"missing encryption_strength for {role}")
            if bits < config.MIN_KEY_STRENGTH_BITS:
                raise ValueError(f"encryption_strength for {role} below {config.MIN_KEY_STRENGTH_BITS}")
        return v

    @field_validator("account")
    @classmethod
    def validate_accounts(cls, v):
        for name in (*sorted(config.VALID_ROLES), config.HOLDING_ACCOUNT_KEY):
            if not v.get(name):
                raise ValueError(f"missing account name for {name}")
        return v

    @field_validator("max_addresses", "max_holding")
    @classmethod
    def validate_pool_size(cls, v):
        if v < 1:
            raise ValueError(f"Invalid pool size: {v}")
        return v


class GlobalSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    server_type: str
    encrypted_wallet: bool = True


class Settings(BaseModel):
    """Resolved settings for the configured role."""
    model_config = ConfigDict(frozen=True)

    role: Role
    encrypted_wallet: bool
    wallets: RoleSettings
    private: PrivateSettings

    @property
    def primary(self) -> WalletEndpoint:
        return self.wallets.primary

    @property
    def secondary(self) -> WalletEndpoint:
        return self.wallets.secondary

    @property
    def key_strength(self) -> int:
        return self.private.encryption_strength[self.role.value]

    @property
    def account_name(self) -> str:
        return self.private.account[self.role.value]

    @property
    def holding_account(self) -> str:
        return self.private.account[config.HOLDING_ACCOUNT_KEY]


# ── Loading ──


def parse_settings(raw: dict) -> Settings:
    """Validate a raw settings mapping and resolve it for the configured role.

    Raises InvalidRoleError before looking at anything else if the server
    type is not a known role.
    """
    if not isinstance(raw, dict):
        raise SettingsValidationError("settings root must be an object")

    server_type = (raw.get("global") or {}).get("server_type")
    if server_type not in config.VALID_ROLES:
        raise InvalidRoleError(server_type)

    role_section = raw.get(server_type)
    if role_section is None:
        raise SettingsValidationError(f"missing section {server_type}")

    try:
        global_settings = GlobalSettings.model_validate(raw["global"])
        wallets = RoleSettings.model_validate(role_section)
        private = PrivateSettings.model_validate(raw.get("private"))
    except ValidationError as e:
        raise SettingsValidationError(str(e))

    role = Role(server_type)
    if role is Role.INCOMING and wallets.secret_options is None:
        raise SettingsValidationError("INCOMING requires secret_options")

    return Settings(
        role=role,
        encrypted_wallet=global_settings.encrypted_wallet,
        wallets=wallets,
        private=private,
    )


def resolve_settings_path(cli_path: Optional[str] = None) -> str:
    if cli_path:
        return cli_path
    return os.environ.get(config.SETTINGS_ENV_VAR, config.DEFAULT_SETTINGS_FILE)


def load_settings(path: str) -> Settings:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise SettingsValidationError(f"cannot read {path}: {e}")
    except json.JSONDecodeError as e:
        raise SettingsValidationError(f"cannot parse {path}: {e}")

    return parse_settings(raw)
