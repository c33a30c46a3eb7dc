import unittest
from unittest.mock import patch

from gas_dashboard.config import get_settings


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            s = get_settings()

        self.assertEqual(s.chains, ["ethereum", "polygon", "arbitrum"])
        self.assertEqual(s.gas_interval_seconds, 15.0)
        self.assertEqual(s.price_interval_seconds, 30.0)
        self.assertEqual(s.retention_cap, 1000)
        self.assertEqual(s.default_history_hours, 24.0)
        self.assertEqual(s.sample_source, "SYNTHETIC")

    def test_chain_list_and_rpc_urls(self):
        env = {"CHAINS": " Ethereum, base ,", "BASE_RPC_URL": "https://base.example"}
        with patch.dict("os.environ", env, clear=True):
            s = get_settings()

        self.assertEqual(s.chains, ["ethereum", "base"])
        self.assertEqual(s.rpc_urls, {"ethereum": "", "base": "https://base.example"})

    def test_invalid_number(self):
        with patch.dict("os.environ", {"RETENTION_CAP": "lots"}, clear=True):
            with self.assertRaises(RuntimeError):
                get_settings()

    def test_non_positive_interval(self):
        with patch.dict("os.environ", {"GAS_INTERVAL_SECONDS": "0"}, clear=True):
            with self.assertRaises(RuntimeError):
                get_settings()
