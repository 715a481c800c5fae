"""Shared fixtures: a throwaway LevelDB and a pool seeded through deposits."""
import pytest
import tempfile
import shutil
from nft_amm.db import DB
from nft_amm.pool import Pool, DepositRequest
from nft_amm.pool_state import ONE_UNIT
from nft_amm.registry import BaseTokenRegistry, NFTRegistry
from nft_amm.state import StateStore

POOL_ADDRESS = b'\x00' * 19 + b'\x05'
ALICE = b'\xaa' * 20
BOB = b'\xbb' * 20

# 4 NFTs + 36 base tokens -> sqrt(36e18 * 4e18) = 12e18 LP, 3e18 LP per NFT
SEED_NFTS = [1, 2, 3, 4]
SEED_BASE = 36 * ONE_UNIT


@pytest.fixture
def db():
    """Create a temporary database for testing."""
    temp_dir = tempfile.mkdtemp()
    db = DB(temp_dir)
    yield db
    db.close()
    shutil.rmtree(temp_dir)


@pytest.fixture
def store(db):
    return StateStore(db)


@pytest.fixture
def base_token():
    return BaseTokenRegistry()


@pytest.fixture
def nfts():
    return NFTRegistry()


def fund(store, base_token, nfts, owner, base_amount, token_ids):
    base_token.mint(owner, base_amount, store)
    for token_id in token_ids:
        nfts.mint(token_id, owner, store)


@pytest.fixture
def open_pool(store, base_token, nfts):
    """Open pool seeded by ALICE with SEED_NFTS and SEED_BASE."""
    fund(store, base_token, nfts, ALICE, 100 * ONE_UNIT, SEED_NFTS + [5, 6])
    pool = Pool.create(store, POOL_ADDRESS, base_token, nfts)
    pool.deposit(ALICE, DepositRequest(SEED_BASE, list(SEED_NFTS)))
    return pool
