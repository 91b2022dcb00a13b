"""
Privacy Cash Client Note Encryption

Deterministic encryption key derivation and per-note AES-256-GCM.

The derived key is a pure function of the owner's sign-in signature, so notes
cached or encrypted in one session stay decryptable in every later session
and on every device holding the same wallet.
"""

from __future__ import annotations
import logging
import secrets
from typing import Optional

from Crypto.Cipher import AES
from Crypto.Hash import keccak

from privacy_cash.constants import (
    SIGN_IN_MESSAGE,
    SIGNATURE_SIZE,
    ENCRYPTION_KEY_SIZE,
    NOTE_VERSION_V2,
    NOTE_NONCE_SIZE,
    NOTE_TAG_SIZE,
    NOTE_FIELD_SEPARATOR,
)
from privacy_cash.core.credentials import Keypair
from privacy_cash.core.types import Note
from privacy_cash.errors import InvalidCredential, NoteDecodeSkipped

logger = logging.getLogger(__name__)

_HEADER_SIZE = 1 + NOTE_NONCE_SIZE + NOTE_TAG_SIZE


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest (pre-standard SHA3 padding, as used on-chain)."""
    return keccak.new(digest_bits=256, data=data).digest()


def derive_key_from_signature(signature: bytes) -> bytes:
    """
    Derive the note encryption key from a sign-in signature.

    Args:
        signature: 64-byte ed25519 signature over SIGN_IN_MESSAGE

    Returns:
        32-byte symmetric key
    """
    if len(signature) != SIGNATURE_SIZE:
        raise InvalidCredential(
            f"signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}",
            length=len(signature),
        )
    return keccak256(bytes(signature))


class EncryptionService:
    """
    Holds the derived encryption key and encrypts/decrypts notes.

    Blob layout (v2): version (1) || nonce (12) || tag (16) || ciphertext
    Plaintext: "amount|blinding|index|mint"
    """

    __slots__ = ("_key",)

    def __init__(self, key: Optional[bytes] = None):
        if key is not None and len(key) != ENCRYPTION_KEY_SIZE:
            raise InvalidCredential(f"encryption key must be {ENCRYPTION_KEY_SIZE} bytes")
        self._key = key

    def __repr__(self) -> str:
        state = "derived" if self._key is not None else "empty"
        return f"EncryptionService(<{state}>)"

    @property
    def has_key(self) -> bool:
        return self._key is not None

    def derive_from_signature(self, signature: bytes) -> None:
        self._key = derive_key_from_signature(signature)

    def derive_from_keypair(self, keypair: Keypair) -> None:
        # ed25519 signatures are deterministic, so this always yields the same key
        self.derive_from_signature(keypair.sign(SIGN_IN_MESSAGE))

    def key_fingerprint(self) -> str:
        """Short non-reversible identifier of the key, safe for logs."""
        self._require_key()
        return keccak256(b"fingerprint" + self._key).hex()[:16]

    def _require_key(self) -> None:
        if self._key is None:
            raise InvalidCredential("encryption key has not been derived")

    # =========================================================================
    # Notes
    # =========================================================================

    def encrypt_note(self, note: Note) -> bytes:
        self._require_key()
        plaintext = NOTE_FIELD_SEPARATOR.join(
            [str(note.amount), str(note.blinding), str(note.index), note.mint]
        ).encode("utf-8")
        nonce = secrets.token_bytes(NOTE_NONCE_SIZE)
        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce, mac_len=NOTE_TAG_SIZE)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return bytes([NOTE_VERSION_V2]) + nonce + tag + ciphertext

    def decrypt_note(self, blob: bytes) -> Note:
        """
        Decrypt one encrypted output.

        Raises:
            NoteDecodeSkipped: blob is malformed or not addressed to this key
        """
        self._require_key()
        if len(blob) <= _HEADER_SIZE:
            raise NoteDecodeSkipped(f"blob too short ({len(blob)} bytes)")
        if blob[0] != NOTE_VERSION_V2:
            raise NoteDecodeSkipped(f"unsupported version {blob[0]}")

        nonce = blob[1:1 + NOTE_NONCE_SIZE]
        tag = blob[1 + NOTE_NONCE_SIZE:_HEADER_SIZE]
        cipher = AES.new(self._key, AES.MODE_GCM, nonce=nonce, mac_len=NOTE_TAG_SIZE)
        try:
            plaintext = cipher.decrypt_and_verify(blob[_HEADER_SIZE:], tag)
        except ValueError as e:
            raise NoteDecodeSkipped("authentication failed") from e

        try:
            amount, blinding, index, mint = plaintext.decode("utf-8").split(NOTE_FIELD_SEPARATOR)
            note = Note(amount=int(amount), blinding=int(blinding), index=int(index), mint=mint)
        except ValueError as e:
            raise NoteDecodeSkipped(f"malformed plaintext ({e})") from e

        if note.amount < 0:
            raise NoteDecodeSkipped("negative amount")
        return note
