"""
Pool genesis and inspection tool.

    python -m nft_amm.pool_tool genesis genesis.json ./pool_data
    python -m nft_amm.pool_tool state ./pool_data
    python -m nft_amm.pool_tool quote ./pool_data --lp-amount 1000000000000000000
    python -m nft_amm.pool_tool serve pool.json < transactions.jsonl

The genesis file holds a "pool" section (same fields as PoolConfig), the
initial base token balances and the initial NFT owners:

    {
      "pool": {"pool_address": "...", "merkle_root": ""},
      "base_balances": [{"address": "ab..", "amount": 1000000000000000000}],
      "nfts": [{"token_id": 1, "owner": "ab.."}]
    }
"""
import sys
import json
import logging
import argparse
from pathlib import Path

from .config import Config, PoolConfig
from .db import DB
from .ledger import ReserveLedger
from .node import PoolNode
from .pool import Pool
from .registry import BaseTokenRegistry, NFTRegistry
from .state import StateStore

logger = logging.getLogger(__name__)


def create_genesis(config_path: str, output_db_path: str) -> Pool:
    """
    Create a pool database from a genesis file.

    Args:
        config_path: Path to the genesis JSON file.
        output_db_path: Directory of the new database; must not exist.
    """
    with open(config_path, 'r') as f:
        genesis = json.load(f)

    if Path(output_db_path).exists():
        raise FileExistsError(f"Output database path '{output_db_path}' already exists")

    pool_config = PoolConfig(**genesis.get('pool', {}))
    db = DB(output_db_path)
    store = StateStore(db)
    base_token = BaseTokenRegistry(pool_config.base_token.encode())
    nfts = NFTRegistry(pool_config.nft_collection.encode())

    for entry in genesis.get('base_balances', []):
        base_token.mint(bytes.fromhex(entry['address']), int(entry['amount']), store)

    for entry in genesis.get('nfts', []):
        nfts.mint(int(entry['token_id']), bytes.fromhex(entry['owner']), store)

    pool = Pool.create(store, pool_config.pool_address_bytes, base_token, nfts,
                       merkle_root=pool_config.merkle_root_bytes)
    store.commit()

    logger.info(
        f"Genesis written to {output_db_path}: "
        f"{len(genesis.get('base_balances', []))} base balances, "
        f"{len(genesis.get('nfts', []))} NFTs"
    )
    return pool


def _load_ledger(db: DB, pool_address: str) -> ReserveLedger:
    return ReserveLedger(StateStore(db), bytes.fromhex(pool_address))


def show_state(db_path: str, pool_address: str) -> dict:
    with DB(db_path, create_if_missing=False) as db:
        state = _load_ledger(db, pool_address).load()
    return {
        'base_reserve': state.base_reserve,
        'fractional_reserve': state.fractional_reserve,
        'nft_count': state.nft_count,
        'lp_token_supply': state.lp_token_supply,
        'price': str(state.current_price),
        'merkle_root': state.merkle_root.hex() if state.merkle_root else None,
    }


def show_quote(db_path: str, pool_address: str, lp_amount: int) -> dict:
    with DB(db_path, create_if_missing=False) as db:
        base_out, fractional_out = _load_ledger(db, pool_address).quote(lp_amount)
    return {
        'lp_token_amount': lp_amount,
        'base_token_out': base_out,
        'fractional_token_out': fractional_out,
    }


def main(argv=None) -> int:
    default_pool = PoolConfig().pool_address

    parser = argparse.ArgumentParser(description="NFT pool genesis and inspection tool.")
    subparsers = parser.add_subparsers(dest='command', required=True)

    genesis_parser = subparsers.add_parser('genesis', help="Create a pool database from a genesis file")
    genesis_parser.add_argument('config', help="Path to the genesis JSON file")
    genesis_parser.add_argument('db_path', help="Directory for the new database")

    state_parser = subparsers.add_parser('state', help="Print pool reserves and supply")
    state_parser.add_argument('db_path')
    state_parser.add_argument('--pool', default=default_pool, help="Pool address (hex)")

    quote_parser = subparsers.add_parser('quote', help="Print the redemption quote for an LP amount")
    quote_parser.add_argument('db_path')
    quote_parser.add_argument('--pool', default=default_pool, help="Pool address (hex)")
    quote_parser.add_argument('--lp-amount', type=int, required=True)

    serve_parser = subparsers.add_parser(
        'serve', help="Apply JSON transactions from stdin to the pool named in a config file")
    serve_parser.add_argument('config', help="Path to the node config JSON file")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    if args.command == 'genesis':
        pool = create_genesis(args.config, args.db_path)
        pool.store.db.close()
        print(f"Pool {pool.pool_address.hex()} created at {args.db_path}")
    elif args.command == 'state':
        print(json.dumps(show_state(args.db_path, args.pool), indent=2))
    elif args.command == 'quote':
        print(json.dumps(show_quote(args.db_path, args.pool, args.lp_amount), indent=2))
    elif args.command == 'serve':
        with PoolNode(Config.from_file(args.config)) as node:
            malformed = node.serve(sys.stdin, sys.stdout)
        return 1 if malformed else 0
    return 0


if __name__ == '__main__':
    sys.exit(main())
