from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Role(str, Enum):
    INCOMING = "INCOMING"
    OUTGOING = "OUTGOING"


class ErrorKind(Enum):
    NOT_ENCRYPTED     = "not_encrypted"
    LOCKED_PASSPHRASE = "locked_passphrase"
    FATAL             = "fatal"


@dataclass(frozen=True)
class RpcFailure:
    kind:     ErrorKind
    code:     Optional[int]
    message:  str

@dataclass(frozen=True)
class KeyPairRecord:
    date_bucket:   int
    private_path:  str
    public_path:   str
    generated:     bool

@dataclass
class PoolStatus:
    account:    str
    wallet:     str
    existing:   int
    created:    int
    target:     int

@dataclass
class EventLogEntry:
    code:     str
    message:  str
    role:     str
    ts:       int

@dataclass
class BootstrapReport:
    success:      bool
    final_stage:  str
    visited:      list[str] = field(default_factory=list)
    failure:      Optional[str] = None
