"""
Asset registry tests.
"""
import pytest
from nft_amm.conftest import ALICE, BOB, POOL_ADDRESS
from nft_amm.errors import InsufficientLpBalance, TransferError
from nft_amm.registry import BaseTokenRegistry, LPTokenRegistry, NFTRegistry


class TestBaseToken:

    def test_mint_and_transfer(self, store, base_token):
        base_token.mint(ALICE, 10 ** 20, store)
        base_token.transfer(ALICE, BOB, 4 * 10 ** 19, store)

        assert base_token.balance_of(ALICE, store) == 6 * 10 ** 19
        assert base_token.balance_of(BOB, store) == 4 * 10 ** 19

    def test_insufficient_balance(self, store, base_token):
        base_token.mint(ALICE, 5, store)
        with pytest.raises(TransferError):
            base_token.transfer(ALICE, BOB, 6, store)
        assert base_token.balance_of(ALICE, store) == 5

    def test_negative_transfer(self, store, base_token):
        with pytest.raises(TransferError):
            base_token.transfer(ALICE, BOB, -1, store)

    def test_namespaces_are_separate(self, store):
        weth = BaseTokenRegistry(b"WETH")
        usdc = BaseTokenRegistry(b"USDC")
        weth.mint(ALICE, 1, store)
        assert usdc.balance_of(ALICE, store) == 0


class TestNFTs:

    def test_mint_and_transfer(self, store, nfts):
        nfts.mint(1, ALICE, store)
        nfts.transfer_ownership(1, ALICE, POOL_ADDRESS, store)
        assert nfts.owner_of(1, store) == POOL_ADDRESS

    def test_unknown_token(self, store, nfts):
        assert nfts.owner_of(404, store) is None
        with pytest.raises(TransferError):
            nfts.transfer_ownership(404, ALICE, BOB, store)

    def test_wrong_owner(self, store, nfts):
        nfts.mint(1, ALICE, store)
        with pytest.raises(TransferError):
            nfts.transfer_ownership(1, BOB, ALICE, store)

    def test_double_transfer_fails(self, store, nfts):
        nfts.mint(1, POOL_ADDRESS, store)
        nfts.transfer_ownership(1, POOL_ADDRESS, ALICE, store)
        with pytest.raises(TransferError):
            nfts.transfer_ownership(1, POOL_ADDRESS, ALICE, store)

    def test_double_mint_fails(self, store, nfts):
        nfts.mint(1, ALICE, store)
        with pytest.raises(TransferError):
            nfts.mint(1, BOB, store)

    def test_receiver_hook(self, store, nfts):
        received = []
        nfts.register_receiver(BOB, lambda token_id, sender: received.append((token_id, sender)))
        nfts.mint(7, ALICE, store)
        nfts.transfer_ownership(7, ALICE, BOB, store)
        assert received == [(7, ALICE)]

        nfts.unregister_receiver(BOB)
        nfts.transfer_ownership(7, BOB, ALICE, store)
        nfts.transfer_ownership(7, ALICE, BOB, store)
        assert received == [(7, ALICE)]

    def test_large_token_ids(self, store, nfts):
        token_id = 2 ** 255 + 12345
        nfts.mint(token_id, ALICE, store)
        assert nfts.owner_of(token_id, store) == ALICE


class TestLPToken:

    def test_mint_and_burn(self, store):
        lp = LPTokenRegistry(POOL_ADDRESS)
        lp.mint(ALICE, 10, store)
        lp.burn(ALICE, 4, store)
        assert lp.balance_of(ALICE, store) == 6

    def test_burn_more_than_balance(self, store):
        lp = LPTokenRegistry(POOL_ADDRESS)
        lp.mint(ALICE, 10, store)
        with pytest.raises(InsufficientLpBalance):
            lp.burn(ALICE, 11, store)
        assert lp.balance_of(ALICE, store) == 10

    def test_balances_are_per_pool(self, store):
        LPTokenRegistry(b'\x01' * 20).mint(ALICE, 10, store)
        assert LPTokenRegistry(b'\x02' * 20).balance_of(ALICE, store) == 0
