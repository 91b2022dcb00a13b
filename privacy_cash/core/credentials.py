"""
Privacy Cash Client Credentials

Owner key material as an explicit tagged variant, and ed25519 keypairs.
NOTE: Secret material is never logged or included in repr.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Union

import base58
import nacl.signing

from privacy_cash.constants import (
    SEED_SIZE,
    SECRET_KEY_SIZE,
    VALID_SECRET_KEY_SIZES,
)
from privacy_cash.core.types import PublicKey
from privacy_cash.errors import InvalidCredential

logger = logging.getLogger(__name__)


class Keypair:
    """
    ed25519 keypair.

    Accepts a 32-byte seed or the 64-byte ledger secret key (seed || public key).
    """

    __slots__ = ("_signing_key", "_public_key")

    def __init__(self, signing_key: nacl.signing.SigningKey):
        self._signing_key = signing_key
        self._public_key = PublicKey(bytes(signing_key.verify_key))

    @classmethod
    def from_secret_key(cls, secret: bytes) -> Keypair:
        if len(secret) not in VALID_SECRET_KEY_SIZES:
            raise InvalidCredential(
                f"expected {SEED_SIZE} or {SECRET_KEY_SIZE} bytes, got {len(secret)}",
                length=len(secret),
            )
        keypair = cls(nacl.signing.SigningKey(bytes(secret[:SEED_SIZE])))
        if len(secret) == SECRET_KEY_SIZE and bytes(secret[SEED_SIZE:]) != keypair.public_key.data:
            raise InvalidCredential("public key half does not match seed", length=len(secret))
        return keypair

    @classmethod
    def generate(cls) -> Keypair:
        return cls(nacl.signing.SigningKey.generate())

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @property
    def secret_key(self) -> bytes:
        """64-byte ledger secret key. Use with caution!"""
        return bytes(self._signing_key) + self._public_key.data

    def sign(self, message: bytes) -> bytes:
        """Detached ed25519 signature (deterministic)."""
        return self._signing_key.sign(message).signature

    def __repr__(self) -> str:
        return f"Keypair(public={self._public_key.to_base58()})"


# ==============================================================================
# Tagged credential variant
# ==============================================================================

@dataclass(frozen=True)
class RawKeyBytes:
    """Secret key as raw bytes (32-byte seed or 64-byte secret key)."""
    data: bytes

    def __repr__(self) -> str:
        return f"RawKeyBytes(<{len(self.data)} bytes redacted>)"


@dataclass(frozen=True)
class EncodedKeyString:
    """Secret key as base58 text or a JSON array of byte values."""
    value: str

    def __repr__(self) -> str:
        return "EncodedKeyString(<redacted>)"


@dataclass(frozen=True)
class KeypairHandle:
    """Already constructed keypair."""
    keypair: Keypair


Credential = Union[RawKeyBytes, EncodedKeyString, KeypairHandle]


def to_credential(value: Any) -> Credential:
    """Convert loose caller input into a tagged credential."""
    if isinstance(value, (RawKeyBytes, EncodedKeyString, KeypairHandle)):
        return value
    if isinstance(value, Keypair):
        return KeypairHandle(value)
    if isinstance(value, (bytes, bytearray)):
        return RawKeyBytes(bytes(value))
    if isinstance(value, str):
        return EncodedKeyString(value)
    if isinstance(value, (list, tuple)):
        return RawKeyBytes(_bytes_from_ints(value))
    raise InvalidCredential(f"unsupported key material type {type(value).__name__}")


def _bytes_from_ints(values: List[Any]) -> bytes:
    try:
        return bytes(values)
    except (TypeError, ValueError) as e:
        raise InvalidCredential(f"byte array must hold integers 0-255 ({e})") from e


def _decode_string(value: str) -> bytes:
    text = value.strip()
    if text.startswith("["):
        try:
            return _bytes_from_ints(json.loads(text))
        except json.JSONDecodeError as e:
            raise InvalidCredential(f"malformed JSON key array ({e.msg})") from e
    try:
        return base58.b58decode(text)
    except ValueError as e:
        raise InvalidCredential("malformed base58 key string") from e


def parse_keypair(credential: Credential) -> Keypair:
    """
    Build a keypair from a credential.

    Raises:
        InvalidCredential: decoded material is not 32 or 64 bytes, or is malformed
    """
    if isinstance(credential, KeypairHandle):
        return credential.keypair
    if isinstance(credential, RawKeyBytes):
        return Keypair.from_secret_key(credential.data)
    if isinstance(credential, EncodedKeyString):
        return Keypair.from_secret_key(_decode_string(credential.value))
    raise InvalidCredential(f"unknown credential variant {type(credential).__name__}")


def load_keyfile(path: Union[str, Path]) -> Keypair:
    """Load a keypair file (JSON array of 64 bytes, as written by the ledger CLI)."""
    try:
        text = Path(path).expanduser().read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidCredential(f"cannot read keyfile {path}: {e}") from e
    keypair = parse_keypair(EncodedKeyString(text))
    logger.info(f"Loaded keypair {keypair.public_key} from {path}")
    return keypair

