"""
Serializing transaction processor for a pool.

Submissions from any thread are applied one at a time, so every pool
operation starts from a fully committed state. Sender nonces advance even
when the operation itself is rejected, which makes a failed transaction
impossible to replay.
"""
import logging
import threading

from .core import NFT_ADD, NFT_REMOVE, PoolTransaction
from .errors import ValidationError
from .pool import DepositRequest, Pool, RedemptionRequest

logger = logging.getLogger(__name__)

NONCE_PREFIX = b"NONCE:"


class TransactionProcessor:
    def __init__(self, pool: Pool, chain_id: int = 1):
        self.pool = pool
        self.store = pool.store
        self.chain_id = chain_id
        self.lock = threading.Lock()
        self.total_processed = 0
        self.total_failed = 0

    def get_nonce(self, address: bytes) -> int:
        nonce = self.store.get_obj(NONCE_PREFIX + address)
        return int(nonce) if nonce is not None else 0

    def _set_nonce(self, address: bytes, nonce: int):
        self.store.set_obj(NONCE_PREFIX + address, nonce)

    def process(self, tx: PoolTransaction):
        """
        Verify and apply one signed transaction.

        Returns:
            LP tokens minted for NFT_ADD, (base_out, fractional_out) for NFT_REMOVE

        Raises:
            ValidationError: Bad signature, chain id or nonce, or any pool
                rejection (the pool state is left untouched)
        """
        with self.lock:
            is_valid, error = tx.validate_basic()
            if not is_valid:
                raise ValidationError(error)

            if tx.chain_id != self.chain_id:
                raise ValidationError(f"Wrong chain ID. Expected {self.chain_id}, got {tx.chain_id}")

            sender = tx.sender_address
            expected_nonce = self.get_nonce(sender)
            if tx.nonce != expected_nonce:
                raise ValidationError(f"Invalid nonce. Expected {expected_nonce}, got {tx.nonce}")

            # Persists even on failure
            self._set_nonce(sender, expected_nonce + 1)

            try:
                result = self._dispatch(tx, sender)
                self.total_processed += 1
                logger.debug(f"Transaction {tx.id.hex()[:8]} applied")
                return result
            except Exception as e:
                self.total_failed += 1
                logger.warning(f"Transaction {tx.id.hex()[:8]} failed: {e}")
                raise
            finally:
                self.store.commit()

    def _dispatch(self, tx: PoolTransaction, sender: bytes):
        data = tx.data
        if tx.tx_type == NFT_ADD:
            return self.pool.deposit(sender, DepositRequest(
                base_token_amount=data['base_token_amount'],
                token_ids=list(data['token_ids']),
                min_lp_token_out=data.get('min_lp_token_out', 0),
                proofs=list(data.get('proofs', [])),
            ))

        elif tx.tx_type == NFT_REMOVE:
            return self.pool.redeem(sender, RedemptionRequest(
                lp_token_amount=data['lp_token_amount'],
                min_base_token_out=data.get('min_base_token_out', 0),
                token_ids=list(data['token_ids']),
                proofs=list(data.get('proofs', [])),
            ))

        raise ValidationError(f"Unknown transaction type: {tx.tx_type}")
