"""
Test the pool record and its proportional math.
"""
import unittest
from decimal import Decimal
from nft_amm.crypto import ZERO_HASH
from nft_amm.pool_state import ONE_UNIT, PoolState


def make_state(base, nfts, supply, root=None):
    return PoolState({
        'base_reserve': base,
        'fractional_reserve': nfts * ONE_UNIT,
        'lp_token_supply': supply,
        'merkle_root': root,
    })


class TestPoolStateRecord(unittest.TestCase):
    def test_default_is_empty_open_pool(self):
        state = PoolState()
        self.assertEqual(state.base_reserve, 0)
        self.assertEqual(state.fractional_reserve, 0)
        self.assertEqual(state.lp_token_supply, 0)
        self.assertTrue(state.is_open)

    def test_storage_dict_keeps_big_integers(self):
        state = make_state(10 ** 30 + 7, 1000, 10 ** 25, root=b'\x11' * 32)
        restored = PoolState(state.to_dict())
        self.assertEqual(restored, state)
        self.assertEqual(restored.base_reserve, 10 ** 30 + 7)
        self.assertEqual(state.to_dict()['fractional_reserve'], str(1000 * ONE_UNIT))

    def test_zero_root_is_open(self):
        self.assertTrue(make_state(0, 0, 0, root=ZERO_HASH).is_open)
        self.assertFalse(make_state(0, 0, 0, root=b'\x01' * 32).is_open)

    def test_rejects_partial_nft_reserve(self):
        with self.assertRaises(ValueError):
            PoolState({'base_reserve': 0, 'fractional_reserve': ONE_UNIT // 2, 'lp_token_supply': 0})

    def test_rejects_negative_values(self):
        with self.assertRaises(ValueError):
            make_state(-1, 0, 0)

    def test_rejects_short_root(self):
        with self.assertRaises(ValueError):
            make_state(0, 0, 0, root=b'\x01' * 31)

    def test_current_price(self):
        self.assertEqual(make_state(10 * ONE_UNIT, 4, ONE_UNIT).current_price, Decimal('2.5'))
        self.assertEqual(PoolState().current_price, Decimal(0))


class TestRemoveAmounts(unittest.TestCase):
    def test_proportional_share(self):
        state = make_state(36 * ONE_UNIT, 4, 12 * ONE_UNIT)
        self.assertEqual(state.get_remove_amounts(3 * ONE_UNIT), (9 * ONE_UNIT, ONE_UNIT))
        self.assertEqual(state.get_remove_amounts(12 * ONE_UNIT), (36 * ONE_UNIT, 4 * ONE_UNIT))

    def test_truncates_down(self):
        state = make_state(100, 1, 3)
        base_out, fractional_out = state.get_remove_amounts(1)
        self.assertEqual(base_out, 33)
        self.assertEqual(fractional_out, ONE_UNIT // 3)

    def test_zero_supply(self):
        with self.assertRaises(ZeroDivisionError):
            PoolState().get_remove_amounts(0)

    def test_negative_amount(self):
        with self.assertRaises(ValueError):
            make_state(1, 1, 1).get_remove_amounts(-1)


class TestAddLpAmount(unittest.TestCase):
    def test_first_deposit_geometric_mean(self):
        self.assertEqual(PoolState().get_add_lp_amount(9 * ONE_UNIT, 4 * ONE_UNIT), 6 * ONE_UNIT)

    def test_later_deposit_takes_smaller_share(self):
        state = make_state(36 * ONE_UNIT, 4, 12 * ONE_UNIT)
        self.assertEqual(state.get_add_lp_amount(9 * ONE_UNIT, ONE_UNIT), 3 * ONE_UNIT)
        self.assertEqual(state.get_add_lp_amount(90 * ONE_UNIT, ONE_UNIT), 3 * ONE_UNIT)
        self.assertEqual(state.get_add_lp_amount(ONE_UNIT, ONE_UNIT), ONE_UNIT // 3)


class TestApply(unittest.TestCase):
    def test_apply_remove_then_add_restores_state(self):
        state = make_state(36 * ONE_UNIT, 4, 12 * ONE_UNIT)
        original = state.copy()

        state.apply_remove(3 * ONE_UNIT, 9 * ONE_UNIT, ONE_UNIT)
        self.assertEqual(state.nft_count, 3)
        state.apply_add(3 * ONE_UNIT, 9 * ONE_UNIT, ONE_UNIT)

        self.assertEqual(state, original)

    def test_apply_remove_cannot_overdraw(self):
        state = make_state(10, 1, 10)
        with self.assertRaises(ValueError):
            state.apply_remove(11, 0, 0)
        with self.assertRaises(ValueError):
            state.apply_remove(1, 11, 0)
        with self.assertRaises(ValueError):
            state.apply_remove(1, 0, 2 * ONE_UNIT)
        self.assertEqual(state, make_state(10, 1, 10))

    def test_apply_remove_keeps_whole_units(self):
        state = make_state(10, 2, 10)
        with self.assertRaises(ValueError):
            state.apply_remove(1, 1, ONE_UNIT // 2)


if __name__ == '__main__':
    unittest.main()
