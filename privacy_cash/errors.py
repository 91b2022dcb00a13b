"""
Privacy Cash Client Error Handling

All error codes and exception classes.
"""

from enum import IntEnum
from typing import Optional, Any


class ErrorCode(IntEnum):
    """Client error codes."""

    # 1xxx - Configuration and credential errors
    MISSING_CREDENTIAL = 1001
    INVALID_CREDENTIAL = 1002
    MISSING_CONNECTION = 1003
    CONFIG_ERROR = 1004
    INVALID_ADDRESS = 1005

    # 2xxx - Synchronization errors
    RETRYABLE_SYNC = 2001
    LEDGER_QUERY = 2002
    NOTE_DECODE_SKIPPED = 2003

    # 3xxx - Signing errors
    MISSING_SIGNER = 3001

    # 4xxx - Operation errors
    ENGINE_ERROR = 4001
    OPERATION_CANCELLED = 4002
    INVALID_AMOUNT = 4003


class PrivacyCashError(Exception):
    """Base exception for all client errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {
            "code": self.code.value,
            "name": self.code.name,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


# ==============================================================================
# Configuration Errors (1xxx)
# ==============================================================================

class MissingCredential(PrivacyCashError):
    def __init__(self, message: str = 'param "owner" or "signature" is required'):
        super().__init__(ErrorCode.MISSING_CREDENTIAL, message)


class InvalidCredential(PrivacyCashError):
    def __init__(self, reason: str, length: Optional[int] = None):
        details = {"length": length} if length is not None else None
        super().__init__(
            ErrorCode.INVALID_CREDENTIAL,
            f"Invalid key material: {reason}",
            details
        )


class MissingConnection(PrivacyCashError):
    def __init__(self, message: str = 'param "connection_provider" or "rpc_url" is required'):
        super().__init__(ErrorCode.MISSING_CONNECTION, message)


class ConfigError(PrivacyCashError):
    def __init__(self, problems: list):
        super().__init__(
            ErrorCode.CONFIG_ERROR,
            "Invalid configuration: " + "; ".join(problems),
            {"problems": list(problems)}
        )


class InvalidAddressError(PrivacyCashError):
    def __init__(self, value: Any, reason: str = ""):
        msg = f"Invalid address: {value!r}"
        if reason:
            msg += f" - {reason}"
        super().__init__(ErrorCode.INVALID_ADDRESS, msg)


# ==============================================================================
# Synchronization Errors (2xxx)
# ==============================================================================

class RetryableSyncError(PrivacyCashError):
    """Sync failed before commit; the cache is unchanged and the call may be retried."""

    def __init__(self, cache_key: str, reason: str):
        super().__init__(
            ErrorCode.RETRYABLE_SYNC,
            f"Sync of {cache_key} failed: {reason}",
            {"cache_key": cache_key}
        )


class LedgerQueryError(PrivacyCashError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        details = {"status_code": status_code} if status_code is not None else None
        super().__init__(ErrorCode.LEDGER_QUERY, message, details)


class NoteDecodeSkipped(PrivacyCashError):
    """Blob could not be decrypted with our key. Never surfaced to callers."""

    def __init__(self, reason: str):
        super().__init__(ErrorCode.NOTE_DECODE_SKIPPED, f"Note skipped: {reason}")


# ==============================================================================
# Signing Errors (3xxx)
# ==============================================================================

class MissingSigner(PrivacyCashError):
    def __init__(self):
        super().__init__(
            ErrorCode.MISSING_SIGNER,
            "No local keypair or external signer available"
        )


# ==============================================================================
# Operation Errors (4xxx)
# ==============================================================================

class EngineError(PrivacyCashError):
    """Raised by engine implementations; passed through to callers unchanged."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(ErrorCode.ENGINE_ERROR, message, details)


class OperationCancelledError(PrivacyCashError):
    def __init__(self, operation: str):
        super().__init__(
            ErrorCode.OPERATION_CANCELLED,
            f"{operation} cancelled before submission",
            {"operation": operation}
        )


class InvalidAmountError(PrivacyCashError):
    def __init__(self, amount: Any, reason: str = ""):
        msg = reason or "Amount must be a positive integer of base units"
        super().__init__(
            ErrorCode.INVALID_AMOUNT,
            f"{msg}, got {amount!r}",
            {"amount": repr(amount)}
        )
