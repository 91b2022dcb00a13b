"""
Privacy Cash Client Constants

All client constants defined here for single source of truth.
"""

from typing import Final, List, Tuple
from dataclasses import dataclass

# ==============================================================================
# LEDGER ADDRESSING
# ==============================================================================

PUBLIC_KEY_SIZE: Final[int] = 32                  # ed25519 public key
SEED_SIZE: Final[int] = 32                        # ed25519 secret seed
SECRET_KEY_SIZE: Final[int] = 64                  # seed || public key
VALID_SECRET_KEY_SIZES: Final[Tuple[int, ...]] = (SEED_SIZE, SECRET_KEY_SIZE)
SIGNATURE_SIZE: Final[int] = 64                   # ed25519 signature

MAX_SEED_LENGTH: Final[int] = 32
MAX_SEEDS: Final[int] = 16
PDA_MARKER: Final[bytes] = b"ProgramDerivedAddress"

PROGRAM_ID: Final[str] = "9fhQBbumKEFuXtMBDw8AaQyAjCorLGJQiS3skWZdQyQD"
TOKEN_PROGRAM_ID: Final[str] = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ASSOCIATED_TOKEN_PROGRAM_ID: Final[str] = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

# Mint recorded inside native-asset notes
NATIVE_MINT_PLACEHOLDER: Final[str] = "11111111111111111111111111111112"

LAMPORTS_PER_SOL: Final[int] = 1_000_000_000

# ==============================================================================
# TOKEN REGISTRY
# ==============================================================================


@dataclass(frozen=True)
class TokenInfo:
    """Registered fungible token."""
    name: str
    mint: str
    decimals: int


USDC_MINT: Final[str] = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT: Final[str] = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"

# Fixed registry used by clear_cache. Mints outside this list are not cleared.
TOKENS: Final[List[TokenInfo]] = [
    TokenInfo("usdc", USDC_MINT, 6),
    TokenInfo("usdt", USDT_MINT, 6),
]

# ==============================================================================
# KEY DERIVATION & NOTE ENCRYPTION
# ==============================================================================

SIGN_IN_MESSAGE: Final[bytes] = b"Privacy Money account sign in"
ENCRYPTION_KEY_SIZE: Final[int] = 32
NOTE_VERSION_V2: Final[int] = 0x02
NOTE_NONCE_SIZE: Final[int] = 12
NOTE_TAG_SIZE: Final[int] = 16
NOTE_FIELD_SEPARATOR: Final[str] = "|"

# ==============================================================================
# CACHE & SYNC
# ==============================================================================

LSK_FETCH_OFFSET: Final[str] = "fetch_offset"
LSK_ENCRYPTED_OUTPUTS: Final[str] = "encrypted_outputs"
STORAGE_KEY_PREFIX_LEN: Final[int] = 6

FETCH_BATCH_SIZE: Final[int] = 20_000
RELAYER_API_URL: Final[str] = "https://api3.privacycash.org"
DEFAULT_RPC_URL: Final[str] = "https://api.mainnet-beta.solana.com"
DEFAULT_COMMITMENT: Final[str] = "confirmed"
DEFAULT_HTTP_TIMEOUT_SEC: Final[float] = 30.0

# ==============================================================================
# STATUS RENDERING
# ==============================================================================

STATUS_INTERVAL_SEC: Final[float] = 0.25
STATUS_FRAMES: Final[Tuple[str, ...]] = ("-", "\\", "|", "/")
ANSI_BLUE: Final[str] = "\x1b[34m"
ANSI_RESET: Final[str] = "\x1b[0m"

LOGGER_ROOT: Final[str] = "privacy_cash"
