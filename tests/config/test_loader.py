"""
Tests for the YAML configuration loader.

Covers:
- Bundled settings and chart
- Settings validation
- Chart parsing: required keys, types, duplicate codes, parent order
- Checksum determinism
"""

import textwrap

import pytest
import yaml

from ledger_config.loader import (
    DEFAULT_CHART_PATH,
    compute_checksum,
    load_chart_of_accounts,
    load_settings,
    load_yaml_file,
    parse_chart,
    parse_settings,
)
from ledger_config.schema import LedgerSettings


def _write(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(textwrap.dedent(body))
    return path


class TestSettings:

    def test_bundled_defaults(self):
        settings = load_settings()

        assert settings == LedgerSettings(
            reporting={
                "entity_name": "Company",
                "default_currency": "MYR",
                "fiscal_year_start_month": 1,
                "include_zero_balances": False,
                "enforce_integrity": True,
            },
        )

    def test_custom_file(self, tmp_path):
        path = _write(tmp_path, "settings.yaml", """
            ledger:
              default_currency: SGD
              entry_number_prefix: GJ
              entry_number_digits: 6
              enforce_period_locks: false
        """)

        settings = load_settings(path)

        assert settings.default_currency == "SGD"
        assert settings.entry_number_prefix == "GJ"
        assert settings.entry_number_digits == 6
        assert not settings.enforce_period_locks

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="colour"):
            parse_settings({"ledger": {"colour": "blue"}})

    def test_flat_mapping_accepted(self):
        assert parse_settings({"default_currency": "USD"}).default_currency == "USD"

    @pytest.mark.parametrize(
        "section",
        [
            {"default_currency": "RINGGIT"},
            {"entry_number_prefix": ""},
            {"entry_number_digits": 0},
        ],
    )
    def test_invalid_values_rejected(self, section):
        with pytest.raises(ValueError):
            parse_settings({"ledger": section})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_non_mapping_document(self, tmp_path):
        path = _write(tmp_path, "list.yaml", "- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)

    def test_malformed_yaml(self, tmp_path):
        path = _write(tmp_path, "bad.yaml", "ledger: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)


class TestBundledChart:

    def setup_method(self):
        self.chart = load_chart_of_accounts()

    def test_identity(self):
        assert self.chart.name == "small_business_my"
        assert self.chart.version == 1
        assert len(self.chart) == 33

    def test_headers(self):
        headers = [a.code for a in self.chart if a.is_header]
        assert headers == ["1000", "1500", "2000", "3000", "4000", "5000", "6000", "7000"]

    def test_parents_listed_first(self):
        seen = set()
        for account in self.chart:
            if account.parent_code:
                assert account.parent_code in seen
            seen.add(account.code)

    def test_tags_and_tax_codes(self):
        assert self.chart.get("1510").tags == ("non_current",)
        assert self.chart.get("2310").tags == ("tax_output",)
        assert self.chart.get("4100").tax_code == "sr"
        assert "cogs" in self.chart.get("5100").tags
        assert self.chart.get("9999") is None

    def test_checksum_stable(self):
        assert self.chart.checksum == load_chart_of_accounts(DEFAULT_CHART_PATH).checksum
        assert len(self.chart.checksum) == 64


class TestParseChart:

    def test_minimal(self):
        chart = parse_chart({
            "name": "tiny",
            "accounts": [
                {"code": 1000, "name": "Assets", "type": "ASSET", "header": True},
                {"code": "1010", "name": "Cash", "type": "asset", "parent": 1000},
            ],
        })

        assert chart.get("1000").account_type == "asset"
        assert chart.get("1010").parent_code == "1000"
        assert chart.version == 1

    def test_missing_type(self):
        with pytest.raises(KeyError):
            parse_chart({"accounts": [{"code": "1010", "name": "Cash"}]})

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="unknown type"):
            parse_chart({"accounts": [{"code": "1010", "name": "Cash", "type": "contra"}]})

    def test_duplicate_code(self):
        with pytest.raises(ValueError, match="Duplicate"):
            parse_chart({
                "accounts": [
                    {"code": "1010", "name": "Cash", "type": "asset"},
                    {"code": "1010", "name": "Petty cash", "type": "asset"},
                ],
            })

    def test_parent_after_child(self):
        with pytest.raises(ValueError, match="before"):
            parse_chart({
                "accounts": [
                    {"code": "1010", "name": "Cash", "type": "asset", "parent": "1000"},
                    {"code": "1000", "name": "Assets", "type": "asset", "header": True},
                ],
            })

    def test_postable_parent(self):
        with pytest.raises(ValueError, match="not a header"):
            parse_chart({
                "accounts": [
                    {"code": "1010", "name": "Cash", "type": "asset"},
                    {"code": "1011", "name": "Petty cash", "type": "asset", "parent": "1010"},
                ],
            })

    def test_custom_chart_file(self, tmp_path):
        path = _write(tmp_path, "chart.yaml", """
            name: trading
            version: 3
            accounts:
              - {code: "1010", name: Cash, type: asset}
              - {code: "4100", name: Sales, type: revenue, tax_code: sr}
        """)

        chart = load_chart_of_accounts(path)

        assert chart.name == "trading"
        assert chart.version == 3
        assert [a.code for a in chart] == ["1010", "4100"]


class TestChecksum:

    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": [1, 2]}) == compute_checksum({"b": [1, 2], "a": 1})

    def test_content_sensitive(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
