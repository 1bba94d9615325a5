import os
import sys
import unittest
from decimal import Decimal
from unittest import mock

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from utils.config import Settings, load_settings  # noqa: E402
from utils.pure import format_money, generate_markdown_table, humanize_status  # noqa: E402


class PureTestCase(unittest.TestCase):
    def test_format_money(self):
        self.assertEqual(format_money(Decimal("80")), "R80.00")
        self.assertEqual(format_money(Decimal("22.5")), "R22.50")
        self.assertEqual(format_money(Decimal("0.005")), "R0.01")
        self.assertEqual(format_money(Decimal("3"), symbol="$"), "$3.00")

    def test_humanize_status(self):
        self.assertEqual(humanize_status("out_of_stock"), "Out Of Stock")
        self.assertEqual(humanize_status("pending"), "Pending")

    def test_markdown_table_escapes_pipes(self):
        md = generate_markdown_table(["Note"], [["a | b"]], ["l"])
        self.assertIn("a \\| b", md)
        self.assertEqual(md.count("\n"), 2)


class SettingsTestCase(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = load_settings()
        self.assertEqual(settings, Settings())

    def test_environment_overrides(self):
        env = {
            "SHOP_DB_PATH": "/tmp/shop-test.sqlite",
            "SHOP_SUCCESS_SECONDS": "2.5",
            "SHOP_SESSION_TTL": "60",
            "SHOP_SEED": "no",
            "DEBUG": "1",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings()
        self.assertEqual(settings.db_path, "/tmp/shop-test.sqlite")
        self.assertEqual(settings.success_seconds, 2.5)
        self.assertEqual(settings.session_ttl, 60)
        self.assertFalse(settings.seed_demo_data)
        self.assertTrue(settings.debug)

    def test_bad_number_is_reported(self):
        with mock.patch.dict(os.environ, {"SHOP_SUCCESS_SECONDS": "soon"}, clear=True):
            with self.assertRaises(ValueError):
                load_settings()


if __name__ == "__main__":
    unittest.main()
