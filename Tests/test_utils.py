import json
import unittest
from unittest.mock import patch, mock_open

from aegis_intel.core.schemas import FreshnessResult
from aegis_intel.core.utils import (
    load_json_file,
    plural,
    round_half_up,
    save_or_print_results,
    to_jsonable,
)


class TestUtils(unittest.TestCase):
    """Tests for utility functions in utils.py."""

    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(20.5), 21)
        self.assertEqual(round_half_up(2.49), 2)
        self.assertEqual(round_half_up(0), 0)

    def test_plural(self):
        self.assertEqual(plural(1, "listing"), "listing")
        self.assertEqual(plural(0, "listing"), "listings")
        self.assertEqual(plural(2, "address", "addresses"), "addresses")

    def test_to_jsonable_uses_aliases(self):
        data = {"subject": FreshnessResult(status="fresh", days_since=3), "items": [1, "a"]}
        self.assertEqual(
            to_jsonable(data),
            {"subject": {"status": "fresh", "daysSince": 3}, "items": [1, "a"]},
        )

    @patch("builtins.open", new_callable=mock_open, read_data='{"a": 1}')
    def test_load_json_file(self, mock_file):
        self.assertEqual(load_json_file("input.json"), {"a": 1})
        mock_file.assert_called_once_with("input.json", "r", encoding="utf-8")

    @patch("builtins.open", new_callable=mock_open)
    def test_save_or_print_results_saves_to_file(self, mock_file):
        """Tests if the function saves to a file when a path is provided."""
        output_file = "test.json"

        with patch("rich.console.Console.print") as mock_print:
            save_or_print_results(FreshnessResult(status="aging", days_since=40), output_file)

            mock_file.assert_called_once_with(output_file, "w", encoding="utf-8")
            written = mock_file().write.call_args[0][0]
            self.assertEqual(json.loads(written), {"status": "aging", "daysSince": 40})
            mock_print.assert_any_call(
                f"[bold green]Successfully saved to {output_file}[/bold green]"
            )

    def test_save_or_print_results_prints_to_console(self):
        with patch("rich.console.Console.print") as mock_print:
            save_or_print_results({"key": "value"}, None)
            mock_print.assert_called_once()

    @patch("builtins.open", side_effect=PermissionError("denied"))
    def test_save_or_print_results_propagates_write_errors(self, mock_file):
        with self.assertRaises(OSError):
            save_or_print_results({"key": "value"}, "/readonly/out.json")


if __name__ == "__main__":
    unittest.main()
