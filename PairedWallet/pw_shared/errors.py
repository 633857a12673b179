from typing import Optional


class PairedWalletError(Exception):
    pass

class SettingsError(PairedWalletError):
    pass

class InvalidRoleError(SettingsError):
    def __init__(self , role):
        self.role = role
        message = f"Invalid serverType {role}"
        super().__init__(message)

class SettingsValidationError(SettingsError):
    def __init__(self , message):
        message = f"Settings_error  = {message}"
        super().__init__(message)


class RpcError(PairedWalletError):
    def __init__(self, method: str, code: Optional[int], message: str):
        self.method = method
        self.code = code
        self.rpc_message = message
        super().__init__(f"{method} failed (code={code}): {message}")


class DaemonUnavailableError(RpcError):
    def __init__(self, wallet: str, method: str, message: str):
        self.wallet = wallet
        super().__init__(method, None, f"cannot reach {wallet} daemon: {message}")


class KeyPairError(PairedWalletError):
    def __init__(self , message):
        message = f"KeyPair_error  = {message}"
        super().__init__(message)


class EventLogUnavailableError(PairedWalletError):
    def __init__(self , message):
        message = f"EventLog_error  = {message}"
        super().__init__(message)


class ProvisioningError(PairedWalletError):
    def __init__(self, account: str, wallet: str, message: str):
        self.account = account
        self.wallet = wallet
        super().__init__(f"Provisioning {account} on {wallet} failed: {message}")


class SecretIssueError(PairedWalletError):
    def __init__(self , message):
        message = f"Secret_error  = {message}"
        super().__init__(message)
