"""
Privacy Cash Client Identity

Resolves the owner's identity from key material or an external sign-in
signature, and derives the note encryption key from it.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from privacy_cash.constants import SIGNATURE_SIZE
from privacy_cash.core.credentials import Keypair, parse_keypair, to_credential
from privacy_cash.core.types import PublicKey
from privacy_cash.crypto.encryption import EncryptionService
from privacy_cash.errors import InvalidCredential, MissingCredential

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    """
    Owner identity.

    keypair is None when the identity was built from an external signature;
    such an identity can read balances but needs an external signer to
    submit transactions.
    """
    public_key: PublicKey
    encryption: EncryptionService
    keypair: Optional[Keypair] = field(default=None, repr=False)

    @property
    def has_keypair(self) -> bool:
        return self.keypair is not None

    @classmethod
    def resolve(
        cls,
        owner: Any = None,
        signature: Optional[bytes] = None,
        public_key: Union[str, bytes, PublicKey, None] = None,
    ) -> "Identity":
        """
        Build an identity.

        Args:
            owner: Key material (bytes, base58/JSON string, int list or Keypair)
            signature: 64-byte signature of the sign-in message
            public_key: Wallet public key, required with signature

        Raises:
            MissingCredential: neither owner nor signature, or signature without public_key
            InvalidCredential: malformed key material or signature
        """
        if owner is not None:
            # key material wins over a supplied signature
            keypair = parse_keypair(to_credential(owner))
            encryption = EncryptionService()
            encryption.derive_from_keypair(keypair)
            logger.debug(f"Identity {keypair.public_key} from key material")
            return cls(public_key=keypair.public_key, encryption=encryption, keypair=keypair)

        if signature is None:
            raise MissingCredential()
        if public_key is None:
            raise MissingCredential('param "public_key" is required with "signature"')
        if len(signature) != SIGNATURE_SIZE:
            raise InvalidCredential(
                f"signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}",
                length=len(signature),
            )

        pubkey = PublicKey.coerce(public_key)
        encryption = EncryptionService()
        encryption.derive_from_signature(bytes(signature))
        logger.debug(f"Identity {pubkey} from external signature")
        return cls(public_key=pubkey, encryption=encryption)
