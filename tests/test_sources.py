import random
import unittest

from gas_dashboard.sources.base import SourceDisabledError
from gas_dashboard.sources.loader import get_source
from gas_dashboard.sources.rpc import RpcSource
from gas_dashboard.sources.synthetic import (
    CHAIN_FEE_BANDS,
    PRICE_CEILING,
    PRICE_FLOOR,
    SyntheticSource,
)
from tests.factories import make_settings


class TestSyntheticSource(unittest.TestCase):
    def test_gas_stays_inside_chain_bands(self):
        source = SyntheticSource(rng=random.Random(42))

        for chain, band in CHAIN_FEE_BANDS.items():
            for _ in range(1000):
                s = source.sample_gas(chain)
                self.assertEqual(s.series_id, chain)
                self.assertGreaterEqual(s.base_fee, band.base_fee[0])
                self.assertLessEqual(s.base_fee, band.base_fee[1])
                self.assertGreaterEqual(s.priority_fee, band.priority_fee[0])
                self.assertLessEqual(s.priority_fee, band.priority_fee[1])

    def test_chain_bands_have_distinct_magnitudes(self):
        source = SyntheticSource(rng=random.Random(7))
        arb = max(source.sample_gas("arbitrum").total_fee for _ in range(200))
        eth = min(source.sample_gas("ethereum").total_fee for _ in range(200))
        self.assertLess(arb, eth)

    def test_price_walk_stays_bounded(self):
        source = SyntheticSource(rng=random.Random(3))
        prices = [source.sample_price().price for _ in range(1000)]

        self.assertTrue(all(PRICE_FLOOR <= p <= PRICE_CEILING for p in prices))
        # a walk, not independent draws: consecutive prices stay close
        steps = [abs(b - a) for a, b in zip(prices, prices[1:])]
        self.assertLess(max(steps), 200.0)

    def test_price_is_clamped(self):
        source = SyntheticSource(rng=random.Random(1), start_price=9000.0)
        self.assertLessEqual(source.sample_price().price, PRICE_CEILING)

        source = SyntheticSource(rng=random.Random(1), start_price=10.0)
        self.assertGreaterEqual(source.sample_price().price, PRICE_FLOOR)

    def test_same_seed_same_samples(self):
        a = SyntheticSource(rng=random.Random(99))
        b = SyntheticSource(rng=random.Random(99))
        self.assertEqual(a.sample_gas("polygon").base_fee, b.sample_gas("polygon").base_fee)
        self.assertEqual(a.sample_price().price, b.sample_price().price)

    def test_unknown_chain_uses_flat_default(self):
        s = SyntheticSource(rng=random.Random(0)).sample_gas("optimism")
        self.assertEqual((s.base_fee, s.priority_fee), (10.0, 2.0))


class TestRpcSource(unittest.TestCase):
    def test_sampling_is_disabled(self):
        source = RpcSource({"ethereum": "https://rpc.example"})
        with self.assertRaises(SourceDisabledError):
            source.sample_gas("ethereum")
        with self.assertRaises(SourceDisabledError):
            source.sample_price()


class TestLoader(unittest.TestCase):
    def test_synthetic_is_default(self):
        self.assertIsInstance(get_source(make_settings()), SyntheticSource)

    def test_rpc(self):
        source = get_source(make_settings(sample_source="rpc"))
        self.assertIsInstance(source, RpcSource)

    def test_unknown_source(self):
        with self.assertRaises(ValueError):
            get_source(make_settings(sample_source="CHAINLINK"))
