"""
NFT/base-token liquidity pool: deposit and redemption engines.

Redemption burns LP shares for the proportional base reserve plus a caller
chosen set of NFTs. The fractional entitlement must equal exactly one unit
per requested NFT, so a position is always settled in whole NFTs.

Every operation runs on a write-buffered snapshot of the state store:
    quote -> eligibility -> slippage checks -> ledger write -> transfers
and the snapshot is committed only when all of it succeeded. The ledger is
written before any transfer, and a non-reentrant guard rejects calls that
arrive from inside a transfer (e.g. an NFT receiver hook).
"""
import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional, Sequence

from . import merkle
from .errors import (
    EligibilityFailure,
    ReentrancyError,
    SlippageBaseOut,
    SlippageFractionalOut,
    SlippageLpOut,
    ValidationError,
)
from .ledger import ReserveLedger
from .pool_state import ONE_UNIT, PoolState
from .registry import BaseTokenRegistry, LPTokenRegistry, NFTRegistry
from .state import StateStore

logger = logging.getLogger(__name__)


@dataclass
class RedemptionRequest:
    """Burn lp_token_amount shares and withdraw token_ids plus base tokens."""
    lp_token_amount: int
    min_base_token_out: int
    token_ids: list = field(default_factory=list)
    proofs: list = field(default_factory=list)  # one sibling path per token id


@dataclass
class DepositRequest:
    """Deposit base tokens plus token_ids for newly minted LP shares."""
    base_token_amount: int
    token_ids: list
    min_lp_token_out: int = 0
    proofs: list = field(default_factory=list)


class Pool:
    """
    One pool pairing an NFT collection with a base token.

    Usage:
        pool = Pool.create(store, POOL_ADDRESS, base_token, nfts, merkle_root=root)
        lp = pool.deposit(alice, DepositRequest(10 * ONE_UNIT, [1, 2], proofs=tree.proofs([1, 2])))
        base_out, fractional_out = pool.redeem(
            alice, RedemptionRequest(lp // 2, 0, [1], tree.proofs([1]))
        )
    """

    def __init__(self, store: StateStore, pool_address: bytes,
                 base_token: BaseTokenRegistry, nfts: NFTRegistry,
                 lp_token: LPTokenRegistry = None, monitor=None):
        self.store = store
        self.pool_address = pool_address
        self.base_token = base_token
        self.nfts = nfts
        self.lp_token = lp_token or LPTokenRegistry(pool_address)
        self.monitor = monitor

    @classmethod
    def create(cls, store: StateStore, pool_address: bytes,
               base_token: BaseTokenRegistry, nfts: NFTRegistry,
               merkle_root: Optional[bytes] = None, **kwargs) -> 'Pool':
        """Initialize an empty pool record and return its engine."""
        ReserveLedger(store, pool_address).initialize(merkle_root)
        return cls(store, pool_address, base_token, nfts, **kwargs)

    @property
    def state(self) -> PoolState:
        """Committed pool record."""
        return ReserveLedger(self.store, self.pool_address).load()

    def remove_quote(self, lp_token_amount: int) -> tuple[int, int]:
        """(base_out, fractional_out) for burning lp_token_amount right now."""
        return ReserveLedger(self.store, self.pool_address).quote(lp_token_amount)

    def add_quote(self, base_token_amount: int, fractional_token_amount: int) -> int:
        """LP tokens a deposit of these amounts would mint right now."""
        return self.state.get_add_lp_amount(base_token_amount, fractional_token_amount)

    # ==========================================================================
    # REDEMPTION
    # ==========================================================================

    def redeem(self, caller: bytes, request: RedemptionRequest) -> tuple[int, int]:
        """
        Burn LP shares and withdraw base tokens plus the requested NFTs.

        Args:
            caller: Address holding the LP shares and receiving the assets
            request: Amount to burn, base floor, token ids and their proofs

        Returns:
            (base_token_amount, fractional_token_amount) paid out

        Raises:
            DivisionByZero: Pool has no LP supply
            EligibilityFailure: A token id fails allow-list verification
            SlippageFractionalOut: Token id count does not match the entitlement
            SlippageBaseOut: Base output below min_base_token_out
            InsufficientLpBalance: Caller holds fewer LP shares than burned
            TransferError: A registry rejected a transfer (e.g. duplicate id)
        """
        with self._operation('redeem') as working:
            if request.lp_token_amount < 0 or request.min_base_token_out < 0:
                raise ValidationError("Redemption amounts cannot be negative")

            ledger = ReserveLedger(working, self.pool_address)
            base_out, fractional_out = ledger.quote(request.lp_token_amount)
            expected_fractional_out = len(request.token_ids) * ONE_UNIT

            self._check_eligibility(ledger.load().merkle_root, request.token_ids, request.proofs)

            if fractional_out != expected_fractional_out:
                raise SlippageFractionalOut(fractional_out, expected_fractional_out)

            if base_out < request.min_base_token_out:
                raise SlippageBaseOut(base_out, request.min_base_token_out)

            # Ledger first, transfers after
            ledger.commit(request.lp_token_amount, base_out, fractional_out)

            self.lp_token.burn(caller, request.lp_token_amount, working)
            self.base_token.transfer(self.pool_address, caller, base_out, working)
            for token_id in request.token_ids:
                self.nfts.transfer_ownership(token_id, self.pool_address, caller, working)

        logger.info(
            f"Redeem: {caller.hex()[:8]} burned {request.lp_token_amount} LP -> "
            f"{base_out} base, {len(request.token_ids)} NFTs {list(request.token_ids)}"
        )
        return base_out, fractional_out

    # ==========================================================================
    # DEPOSIT
    # ==========================================================================

    def deposit(self, caller: bytes, request: DepositRequest) -> int:
        """
        Deposit base tokens and NFTs, minting LP shares to the caller.

        Returns:
            LP tokens minted
        """
        with self._operation('deposit') as working:
            if request.base_token_amount <= 0 or not request.token_ids:
                raise ValidationError("Cannot add zero liquidity")
            if request.min_lp_token_out < 0:
                raise ValidationError("Minimum LP output cannot be negative")

            ledger = ReserveLedger(working, self.pool_address)
            state = ledger.load()

            self._check_eligibility(state.merkle_root, request.token_ids, request.proofs)

            fractional_in = len(request.token_ids) * ONE_UNIT
            lp_token_amount = state.get_add_lp_amount(request.base_token_amount, fractional_in)
            if lp_token_amount == 0:
                raise ValidationError("Liquidity addition too small")
            if lp_token_amount < request.min_lp_token_out:
                raise SlippageLpOut(lp_token_amount, request.min_lp_token_out)

            ledger.credit(lp_token_amount, request.base_token_amount, fractional_in)

            self.base_token.transfer(caller, self.pool_address, request.base_token_amount, working)
            for token_id in request.token_ids:
                self.nfts.transfer_ownership(token_id, caller, self.pool_address, working)
            self.lp_token.mint(caller, lp_token_amount, working)

        logger.info(
            f"Deposit: {caller.hex()[:8]} added {request.base_token_amount} base, "
            f"{len(request.token_ids)} NFTs -> {lp_token_amount} LP"
        )
        return lp_token_amount

    # ==========================================================================
    # INTERNALS
    # ==========================================================================

    @staticmethod
    def _check_eligibility(root: Optional[bytes], token_ids: Sequence[int], proofs: Sequence):
        """Reject the whole request on the first token id that fails verification."""
        for i, token_id in enumerate(token_ids):
            proof = proofs[i] if i < len(proofs) else None
            if not merkle.verify(root, token_id, proof):
                raise EligibilityFailure(token_id)

    @contextmanager
    def _operation(self, name: str):
        """
        Non-reentrant, all-or-nothing unit of work over a store snapshot.

        The guard lives on the root store and is keyed by pool address, so
        a nested call is rejected whichever Pool object it comes through.
        """
        start = time.time()
        in_flight = self.store.root.in_flight
        working = None
        try:
            if self.pool_address in in_flight:
                raise ReentrancyError(f"Pool {self.pool_address.hex()} is already executing an operation")

            in_flight.add(self.pool_address)
            try:
                working = self.store.snapshot()
                yield working
                working.commit()
            finally:
                in_flight.discard(self.pool_address)
        except Exception as e:
            if working is not None:
                working.discard()
            logger.warning(f"{name} failed on pool {self.pool_address.hex()[:8]}: {e}")
            self._record(name, 'failed', start)
            raise

        self._record(name, 'success', start)

    def _record(self, name: str, status: str, start: float):
        if self.monitor is None:
            return
        self.monitor.record_operation(name, status, time.time() - start)
        if status == 'success':
            self.monitor.update_pool(self.state)
