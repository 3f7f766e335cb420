from __future__ import annotations

import os
import unittest
from unittest import mock

from underwriting.config import _int_env


class ConfigTests(unittest.TestCase):
    def test_int_env_default_and_override(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(_int_env("KPI_LIVE_YEAR", "2026"), 2026)
        with mock.patch.dict(os.environ, {"KPI_LIVE_YEAR": " 2027 "}):
            self.assertEqual(_int_env("KPI_LIVE_YEAR", "2026"), 2027)

    def test_malformed_int_env_names_the_variable(self) -> None:
        with mock.patch.dict(os.environ, {"KPI_LIVE_YEAR": "twenty"}):
            with self.assertRaisesRegex(ValueError, "KPI_LIVE_YEAR"):
                _int_env("KPI_LIVE_YEAR", "2026")


if __name__ == "__main__":
    unittest.main()
