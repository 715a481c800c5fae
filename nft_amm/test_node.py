"""
Pool node tests: config wiring, transaction submission and the serve loop.
"""
import io
import json
import pytest
from nft_amm import pool_tool
from nft_amm.config import Config
from nft_amm.core import NFT_ADD, NFT_REMOVE, PoolTransaction
from nft_amm.crypto import generate_key_pair, public_key_to_address, serialize_public_key
from nft_amm.merkle import MerkleTree
from nft_amm.node import PoolNode
from nft_amm.pool_state import ONE_UNIT

POOL_HEX = "00" * 19 + "05"
ALLOW_LIST = MerkleTree([1, 2, 3, 4])


@pytest.fixture
def wallet():
    private_key, public_key = generate_key_pair()
    return private_key, serialize_public_key(public_key)


@pytest.fixture
def config(tmp_path, wallet):
    """Genesis database funding the wallet, plus a node config pointing at it."""
    owner = public_key_to_address(wallet[1]).hex()
    genesis_path = tmp_path / 'genesis.json'
    genesis_path.write_text(json.dumps({
        'pool': {'pool_address': POOL_HEX, 'merkle_root': ALLOW_LIST.root.hex()},
        'base_balances': [{'address': owner, 'amount': 100 * ONE_UNIT}],
        'nfts': [{'token_id': i, 'owner': owner} for i in (1, 2, 3, 4, 5)],
    }))
    db_path = str(tmp_path / 'db')
    pool_tool.create_genesis(str(genesis_path), db_path).store.db.close()

    config = Config.default()
    config.pool.pool_address = POOL_HEX
    config.database.path = db_path
    return config


def signed(wallet, tx_type, data, nonce):
    private_key, public_key_pem = wallet
    tx = PoolTransaction(public_key_pem, tx_type, data, nonce)
    tx.sign(private_key)
    return tx


def deposit_tx(wallet, nonce=0, token_ids=(1, 2, 3, 4)):
    token_ids = list(token_ids)
    return signed(wallet, NFT_ADD, {
        'base_token_amount': 36 * ONE_UNIT,
        'token_ids': token_ids,
        'proofs': ALLOW_LIST.proofs(token_ids),
    }, nonce)


def redeem_tx(wallet, nonce, token_ids):
    return signed(wallet, NFT_REMOVE, {
        'lp_token_amount': 3 * ONE_UNIT * len(token_ids),
        'min_base_token_out': 0,
        'token_ids': list(token_ids),
        'proofs': ALLOW_LIST.proofs(token_ids),
    }, nonce)


def test_json_form_keeps_signature_valid(wallet):
    tx = deposit_tx(wallet)
    restored = PoolTransaction.from_json(tx.to_json())

    assert restored.verify_signature()
    assert restored.id == tx.id
    assert restored.data['proofs'] == tx.data['proofs']


def test_node_uses_database_config(config):
    config.database.write_buffer_size = 4 * 1024 * 1024
    with PoolNode(config) as node:
        assert node.db.path == config.database.path
        assert node.monitor is None
        assert node.pool.state.merkle_root == ALLOW_LIST.root
        assert node.running
    assert node.db.is_closed()


def test_missing_pool_is_refused(config):
    config.pool.pool_address = "00" * 19 + "09"
    with pytest.raises(KeyError):
        PoolNode(config)


def test_submit_deposit_and_redeem(config, wallet):
    with PoolNode(config) as node:
        added = node.submit(deposit_tx(wallet))
        removed = node.submit(redeem_tx(wallet, 1, [2]))
        # token 5 is not on the allow-list; borrow the proof of token 4
        rejected = node.submit(signed(wallet, NFT_REMOVE, {
            'lp_token_amount': 3 * ONE_UNIT,
            'token_ids': [5],
            'proofs': [ALLOW_LIST.proof(4)],
        }, 2))

    assert added['status'] == 'success'
    assert added['lp_token_out'] == 12 * ONE_UNIT
    assert removed['base_token_out'] == 9 * ONE_UNIT
    assert removed['fractional_token_out'] == ONE_UNIT
    assert rejected['status'] == 'failed'
    assert rejected['error'] == 'EligibilityFailure'

    state = pool_tool.show_state(config.database.path, POOL_HEX)
    assert state['nft_count'] == 3
    assert state['lp_token_supply'] == 9 * ONE_UNIT


def test_serve_reports_each_line(config, wallet):
    lines = io.StringIO("\n".join([
        deposit_tx(wallet).to_json(),
        "not json",
        deposit_tx(wallet, nonce=0).to_json(),
        "",
    ]))
    out = io.StringIO()

    with PoolNode(config) as node:
        malformed = node.serve(lines, out)

    results = [json.loads(line) for line in out.getvalue().splitlines()]
    assert malformed == 1
    assert [r['status'] for r in results] == ['success', 'malformed', 'failed']
    assert 'nonce' in results[2]['message']


def test_monitoring_enabled(config, wallet):
    config.monitoring.enabled = True
    config.monitoring.port = 0

    with PoolNode(config) as node:
        assert node.monitor.sample('pool_lp_token_supply') == 0
        node.submit(deposit_tx(wallet))
        assert node.monitor.sample(
            'pool_operations_total', {'operation': 'deposit', 'status': 'success'}) == 1
        assert node.monitor.sample('pool_nft_reserve') == 4
    assert node.monitor.server is None


def test_serve_command(config, wallet, tmp_path, monkeypatch, capsys):
    config_path = str(tmp_path / 'node.json')
    config.to_file(config_path)
    monkeypatch.setattr('sys.stdin', io.StringIO(deposit_tx(wallet).to_json() + "\n"))

    assert pool_tool.main(['serve', config_path]) == 0

    result = json.loads(capsys.readouterr().out.strip())
    assert result['status'] == 'success'
    assert result['lp_token_out'] == 12 * ONE_UNIT
