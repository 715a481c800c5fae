"""
Pool node: one pool opened from a Config, fed signed transactions.

    python -m nft_amm.pool_tool serve pool.json < transactions.jsonl

Each input line is a PoolTransaction in JSON form (see PoolTransaction.to_json);
each output line is a JSON result for the matching input line.
"""
import json
import logging
from typing import IO

from .config import Config
from .core import PoolTransaction
from .db import DB
from .errors import ValidationError
from .monitoring import Monitor
from .pool import Pool
from .processor import TransactionProcessor
from .registry import BaseTokenRegistry, NFTRegistry
from .state import StateStore

logger = logging.getLogger(__name__)


class PoolNode:
    """Main pool node orchestrator."""

    def __init__(self, config: Config):
        self.config = config

        logger.info(f"Opening pool database at {config.database.path}")
        self.db = DB(
            config.database.path,
            create_if_missing=False,
            write_buffer_size=config.database.write_buffer_size,
            max_open_files=config.database.max_open_files,
        )

        self.monitor = None
        if config.monitoring.enabled:
            self.monitor = Monitor(host=config.monitoring.host, port=config.monitoring.port)

        pool_config = config.pool
        self.pool = Pool(
            StateStore(self.db),
            pool_config.pool_address_bytes,
            BaseTokenRegistry(pool_config.base_token.encode()),
            NFTRegistry(pool_config.nft_collection.encode()),
            monitor=self.monitor,
        )
        try:
            state = self.pool.state
        except KeyError:
            self.db.close()
            raise

        self.processor = TransactionProcessor(self.pool, chain_id=pool_config.chain_id)
        self.running = False
        logger.info(f"Pool {pool_config.pool_address} loaded: {state!r}")

    def start(self):
        """Start the metrics endpoint, if enabled."""
        if self.monitor is not None:
            self.monitor.update_pool(self.pool.state)
            self.monitor.start_server()
        self.running = True

    def stop(self):
        if self.monitor is not None:
            self.monitor.stop_server()
        self.db.close()
        self.running = False
        logger.info("Pool node stopped")

    def submit(self, tx: PoolTransaction) -> dict:
        """Process one transaction and describe the outcome."""
        result = {'id': tx.id.hex(), 'tx_type': tx.tx_type}
        try:
            outcome = self.processor.process(tx)
        except ValidationError as e:
            result.update(status='failed', error=type(e).__name__, message=str(e))
            return result

        if isinstance(outcome, tuple):
            result.update(status='success', base_token_out=outcome[0], fractional_token_out=outcome[1])
        else:
            result.update(status='success', lp_token_out=outcome)
        return result

    def serve(self, lines: IO[str], out: IO[str]) -> int:
        """
        Apply newline-delimited JSON transactions until the input ends.

        Returns:
            Number of lines that could not be parsed
        """
        malformed = 0
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                tx = PoolTransaction.from_json(line)
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                malformed += 1
                logger.warning(f"Skipping malformed transaction: {e}")
                out.write(json.dumps({'status': 'malformed', 'message': str(e)}) + "\n")
                continue
            out.write(json.dumps(self.submit(tx)) + "\n")
            out.flush()
        return malformed

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
