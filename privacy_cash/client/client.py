"""
Privacy Cash Client

Configuration-driven entry point: resolves the identity, wires the note
cache, synchronizer, balance aggregator and operation orchestrator, and
exposes deposit / withdraw / balance for the native asset and tokens.
"""

from __future__ import annotations
import asyncio
import logging
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from privacy_cash.client.config import ClientConfig, setup_logging
from privacy_cash.client.orchestrator import OperationOrchestrator
from privacy_cash.client.status import (
    CallbackLogHandler,
    PhaseLogHandler,
    StatusReporter,
    log_owner,
)
from privacy_cash.constants import LOGGER_ROOT, USDC_MINT
from privacy_cash.core.credentials import load_keyfile
from privacy_cash.core.identity import Identity
from privacy_cash.core.types import (
    PublicKey,
    AssetDescriptor,
    TransferResult,
    NATIVE,
    asset_for_mint,
    to_base_units,
)
from privacy_cash.errors import (
    ConfigError,
    InvalidAddressError,
    InvalidAmountError,
    MissingConnection,
    MissingCredential,
)
from privacy_cash.network.indexer import NoteSource, RelayerNoteSource
from privacy_cash.network.rpc import LedgerConnection, static_provider
from privacy_cash.protocol.engine import Engine, OperationKind
from privacy_cash.signing.signer import TransactionSigner, resolve_signer
from privacy_cash.storage.cache import CacheStore, MemoryCacheStore
from privacy_cash.storage.sqlite import SQLiteCacheStore
from privacy_cash.sync.balance import BalanceAggregator
from privacy_cash.sync.synchronizer import NoteSynchronizer

logger = logging.getLogger(__name__)

MintLike = Union[str, PublicKey]
TokenAmount = Union[int, float, str, Decimal]


class PrivacyCash:
    """
    Privacy Cash client for one owner.

    Usage:
        async with PrivacyCash(config, engine) as client:
            await client.deposit(10_000_000)
            balance = await client.get_private_balance()

    Deposits and withdrawals of one client run one at a time; concurrent
    calls wait their turn.
    """

    def __init__(
        self,
        config: ClientConfig,
        engine: Engine,
        store: Optional[CacheStore] = None,
        note_source: Optional[NoteSource] = None,
    ):
        """
        Raises:
            ConfigError: out-of-range configuration values
            MissingCredential: no owner, keyfile or signature
            InvalidCredential: malformed key material or signature
            MissingConnection: neither connection_provider nor rpc_url
        """
        problems = config.validate()
        if problems:
            raise ConfigError(problems)

        self.config = config
        self.engine = engine
        self.identity = self._resolve_identity(config)

        if not config.has_connection:
            raise MissingConnection()

        self._connection: Optional[LedgerConnection] = None
        if config.ledger.connection_provider is not None:
            self._connection_provider = config.ledger.connection_provider
        else:
            self._connection = LedgerConnection(
                config.ledger.rpc_url,
                commitment=config.ledger.commitment,
                timeout=config.ledger.timeout,
            )
            self._connection_provider = static_provider(self._connection)

        self._owns_store = store is None
        if store is None:
            if config.storage.db_path:
                store = SQLiteCacheStore(config.storage.db_path)
            else:
                store = MemoryCacheStore()
        self.store = store

        self._owns_source = note_source is None
        self.note_source = note_source or RelayerNoteSource(
            config.ledger.indexer_url, timeout=config.ledger.timeout
        )

        self.synchronizer = NoteSynchronizer(
            self.store,
            self.note_source,
            batch_size=config.sync.batch_size,
            starting_offsets=config.starting_offsets,
        )
        self.balances = BalanceAggregator(self.identity.encryption, engine)
        self.orchestrator = OperationOrchestrator(
            self.identity.public_key,
            engine,
            self.synchronizer,
            self._connection_provider,
            self.identity.encryption,
        )
        self.reporter = StatusReporter(self.orchestrator, interval=config.status.interval)

        self._handlers: List[logging.Handler] = setup_logging(config.log)
        self._install_log_handler()
        self._closed = False

        logger.info(f"Client ready for {self.public_key}")

    @staticmethod
    def _resolve_identity(config: ClientConfig) -> Identity:
        if not config.has_identity:
            raise MissingCredential()
        owner = config.owner
        if owner is None and config.keyfile is not None:
            owner = load_keyfile(config.keyfile)
        return Identity.resolve(
            owner=owner,
            signature=config.signature,
            public_key=config.public_key,
        )

    def _install_log_handler(self) -> None:
        if self.config.debug_mode:
            if self.config.log_callback is None:
                return
            handler: logging.Handler = CallbackLogHandler(self.config.log_callback)
        else:
            handler = PhaseLogHandler(self.orchestrator, self.reporter.stream)
        logging.getLogger(LOGGER_ROOT).addHandler(handler)
        self._handlers.append(handler)

    @property
    def public_key(self) -> PublicKey:
        return self.identity.public_key

    # =========================================================================
    # Deposit
    # =========================================================================

    async def deposit(
        self,
        amount: int,
        signer: Optional[TransactionSigner] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> TransferResult:
        """
        Deposit native asset into the pool.

        Args:
            amount: Lamports
            signer: External signer; defaults to the local keypair
            cancel: Optional cancellation event

        Raises:
            MissingSigner: no local keypair and no signer supplied
        """
        return await self._deposit(NATIVE, amount, signer, cancel)

    async def deposit_spl(
        self,
        amount: Optional[int] = None,
        mint: Optional[MintLike] = None,
        signer: Optional[TransactionSigner] = None,
        cancel: Optional[asyncio.Event] = None,
        *,
        token_amount: Optional[TokenAmount] = None,
    ) -> TransferResult:
        """
        Deposit a fungible token.

        Args:
            amount: Base units of the token
            mint: Token mint address
            signer: External signer; defaults to the local keypair
            cancel: Optional cancellation event
            token_amount: Whole-token amount (e.g. "1.5"), converted with the
                registered decimals; use instead of amount

        Raises:
            InvalidAmountError: both or neither of amount and token_amount,
                or token_amount for an unregistered mint
        """
        asset, base_units = self._spl_amount(mint, amount, token_amount)
        return await self._deposit(asset, base_units, signer, cancel)

    async def deposit_usdc(
        self,
        amount: int,
        signer: Optional[TransactionSigner] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> TransferResult:
        return await self.deposit_spl(amount, USDC_MINT, signer, cancel)

    async def _deposit(
        self,
        asset: AssetDescriptor,
        amount: int,
        signer: Optional[TransactionSigner],
        cancel: Optional[asyncio.Event],
    ) -> TransferResult:
        chosen = resolve_signer(self.identity.keypair, signer)
        return await self._run(OperationKind.DEPOSIT, asset, amount, chosen, None, None, cancel)

    # =========================================================================
    # Withdraw
    # =========================================================================

    async def withdraw(
        self,
        amount: int,
        recipient: Optional[MintLike] = None,
        referrer: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> TransferResult:
        """
        Withdraw native asset from the pool.

        Args:
            amount: Lamports
            recipient: Destination address, defaults to the owner
            referrer: Optional referral code passed to the engine
            cancel: Optional cancellation event
        """
        return await self._withdraw(NATIVE, amount, recipient, referrer, cancel)

    async def withdraw_spl(
        self,
        amount: Optional[int] = None,
        mint: Optional[MintLike] = None,
        recipient: Optional[MintLike] = None,
        referrer: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
        *,
        token_amount: Optional[TokenAmount] = None,
    ) -> TransferResult:
        """Withdraw a fungible token; amounts as for deposit_spl."""
        asset, base_units = self._spl_amount(mint, amount, token_amount)
        return await self._withdraw(asset, base_units, recipient, referrer, cancel)

    async def withdraw_usdc(
        self,
        amount: int,
        recipient: Optional[MintLike] = None,
        referrer: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> TransferResult:
        return await self.withdraw_spl(amount, USDC_MINT, recipient, referrer, cancel)

    @staticmethod
    def _spl_amount(
        mint: Optional[MintLike],
        amount: Optional[int],
        token_amount: Optional[TokenAmount],
    ) -> Tuple[AssetDescriptor, int]:
        if mint is None:
            raise InvalidAddressError(mint, "mint is required")
        asset = asset_for_mint(mint)
        if (amount is None) == (token_amount is None):
            raise InvalidAmountError(
                amount, "Give exactly one of amount (base units) or token_amount"
            )
        if token_amount is not None:
            return asset, to_base_units(asset, token_amount)
        return asset, amount

    async def _withdraw(
        self,
        asset: AssetDescriptor,
        amount: int,
        recipient: Optional[MintLike],
        referrer: Optional[str],
        cancel: Optional[asyncio.Event],
    ) -> TransferResult:
        target = PublicKey.coerce(recipient) if recipient is not None else self.public_key
        # withdrawals are relayed; the local keypair is handed over when present
        signer = resolve_signer(self.identity.keypair) if self.identity.has_keypair else None
        return await self._run(OperationKind.WITHDRAW, asset, amount, signer, target, referrer, cancel)

    async def _run(
        self,
        kind: OperationKind,
        asset: AssetDescriptor,
        amount: int,
        signer: Optional[TransactionSigner],
        recipient: Optional[PublicKey],
        referrer: Optional[str],
        cancel: Optional[asyncio.Event],
    ) -> TransferResult:
        if not self.config.debug_mode:
            self.reporter.start()
        return await self.orchestrator.run(
            kind,
            asset,
            amount,
            signer=signer,
            recipient=recipient,
            referrer=referrer,
            cancel=cancel,
        )

    # =========================================================================
    # Balance
    # =========================================================================

    async def get_private_balance(self, cancel: Optional[asyncio.Event] = None) -> int:
        """Private native balance in lamports."""
        return await self._balance(NATIVE, cancel)

    async def get_private_balance_spl(
        self,
        mint: MintLike,
        cancel: Optional[asyncio.Event] = None,
    ) -> int:
        """Private token balance in the token's base units."""
        return await self._balance(asset_for_mint(mint), cancel)

    async def get_private_balance_usdc(self, cancel: Optional[asyncio.Event] = None) -> int:
        return await self._balance(asset_for_mint(USDC_MINT), cancel)

    async def _balance(self, asset: AssetDescriptor, cancel: Optional[asyncio.Event]) -> int:
        with log_owner(self.orchestrator):
            record = await self.synchronizer.sync(self.public_key, asset, cancel)
            return await self.balances.balance(record, asset)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def clear_cache(self) -> List[str]:
        """
        Drop cached notes for the native asset and registered tokens.

        The next balance query or operation re-downloads them.
        """
        with log_owner(self.orchestrator):
            return await self.synchronizer.clear_cache(self.public_key)

    async def close(self) -> None:
        """Stop the status line and release owned resources."""
        if self._closed:
            return
        self._closed = True

        await self.reporter.stop()

        package_logger = logging.getLogger(LOGGER_ROOT)
        for handler in self._handlers:
            package_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

        if self._owns_source:
            await self.note_source.close()
        if self._connection is not None:
            await self._connection.close()
        if self._owns_store:
            await self.store.close()

        logger.debug(f"Client for {self.public_key} closed")

    async def __aenter__(self) -> "PrivacyCash":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
