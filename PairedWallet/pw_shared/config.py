# Roles

VALID_ROLES             = {"INCOMING", "OUTGOING"}
HOLDING_ACCOUNT_KEY     = "HOLDING"

# Wallet RPC

RPC_WALLET_UNENCRYPTED  = -15       # unlock/lock called on an unencrypted wallet
RPC_WALLET_WRONG_STATE  = -17       # wallet already unlocked / passphrase state issue
RPC_TIMEOUT_SECONDS     = 60        # encryptwallet can be slow
RPC_VERSION             = "1.0"
DEFAULT_UNLOCK_SECONDS  = 600

# Bootstrap Retry Limits

MAX_ENCRYPT_ATTEMPTS    = 1         # per wallet per run
MAX_LOCK_RETRIES        = 5         # per wallet per run

# Redis Connection (structured event log + address pools)

REDIS_HOST              = "localhost"
REDIS_PORT              = 6379
REDIS_LOG_DB            = 2
REDIS_SOCKET_TIMEOUT    = 5         # seconds

# Key Namespace Prefixes

EVENT_LOG_KEY           = "log:v1:events"
EVENT_LOG_MAX_ENTRIES   = 10_000
POOL_KEY_PREFIX         = "pool:v1"      # pool:v1:{role}:{account}:{wallet}

# Structured Log Codes

LOG_CODE_WALLET         = "001"
LOG_CODE_ADDRESSES      = "002"
LOG_CODE_KEYPAIR        = "003"
LOG_CODE_SECRET         = "004"

# Key Pair

RSA_PUBLIC_EXPONENT     = 65537
MIN_KEY_STRENGTH_BITS   = 1024      # smallest key that still fits the probe under PKCS#1 v1.5

PROBE_PAYLOAD = {
    "a": "NWMZ2atWCbUnVDKgmPHeTbGLmMUXZxZ3J3",
    "n": "999999.99999999",
    "s": "123456789012345678901234567890123456789012",
}

# Secret Issuer

SECRET_BYTES            = 32
SECRET_DISPLAY_CHARS    = 32

# Settings

SETTINGS_ENV_VAR        = "PW_SETTINGS_FILE"
DEFAULT_SETTINGS_FILE   = "settings.json"
