"""
Measurement and wallet validation tests.
"""

import pytest

from bluecarbon.core.constants import REQUIRED_MEASUREMENT_FIELDS
from bluecarbon.handlers.validation import (
    format_wallet_address,
    parse_number,
    validate_measurement,
    validate_wallet_address,
)
from factories import OTHER_WALLET, OWNER_WALLET, SYSTEM_ACCOUNT, reference_measurement


class TestParseNumber:
    @pytest.mark.parametrize("value,expected", [
        (0, 0.0),
        ("0", 0.0),
        (" 1.5 ", 1.5),
        (2, 2.0),
    ])
    def test_numbers(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", True, False, "nan", "inf", [], {}])
    def test_not_numbers(self, value):
        assert parse_number(value) is None


class TestValidateMeasurement:
    def test_complete_measurement(self):
        result = validate_measurement(reference_measurement())

        assert result.valid is True
        assert result.missing == []
        assert result.required_fields == list(REQUIRED_MEASUREMENT_FIELDS)

    def test_missing_carbon_percent(self):
        data = reference_measurement()
        del data["carbon_percent"]

        result = validate_measurement(data)
        assert result.valid is False
        assert result.missing == ["carbon_percent"]

    def test_reports_every_missing_field_in_order(self):
        result = validate_measurement({"depth": 1, "ch4_flux": "x", "bulk_density": ""})

        assert result.missing == [
            field for field in REQUIRED_MEASUREMENT_FIELDS if field != "depth"
        ]

    def test_empty_or_absent_input(self):
        assert validate_measurement(None).missing == list(REQUIRED_MEASUREMENT_FIELDS)
        assert validate_measurement({}).valid is False

    def test_optional_fields_may_be_omitted(self):
        data = reference_measurement()
        del data["carbon_fraction"]
        del data["uncertainty_deduction"]
        assert validate_measurement(data).valid is True

    def test_non_numeric_optional_field(self):
        result = validate_measurement(reference_measurement(carbon_fraction="high"))

        assert result.valid is False
        assert result.missing == ["carbon_fraction"]

    def test_zero_values_are_present(self):
        data = {field: 0 for field in REQUIRED_MEASUREMENT_FIELDS}
        assert validate_measurement(data).valid is True


class TestValidateWalletAddress:
    @pytest.mark.parametrize("address", [OWNER_WALLET, OTHER_WALLET, f"  {OWNER_WALLET}  "])
    def test_valid(self, address):
        result = validate_wallet_address(address)
        assert result.valid is True
        assert result.reason is None

    def test_system_account(self):
        result = validate_wallet_address(SYSTEM_ACCOUNT)

        assert result.valid is False
        assert result.reason == "system account"

    @pytest.mark.parametrize("address", [
        "11111111111111111111111111111111",
        "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
    ])
    def test_program_accounts(self, address):
        assert validate_wallet_address(address).reason == "system account"

    @pytest.mark.parametrize("address", [None, "", "   ", 12345])
    def test_required(self, address):
        assert validate_wallet_address(address).reason == "wallet address is required"

    @pytest.mark.parametrize("address", ["abc", "7" * 31, "7" * 45])
    def test_length(self, address):
        assert validate_wallet_address(address).reason == "invalid length"

    @pytest.mark.parametrize("char", ["0", "O", "I", "l", "-", " "])
    def test_characters_outside_base58(self, char):
        address = OWNER_WALLET[:20] + char + OWNER_WALLET[21:]
        assert validate_wallet_address(address).reason == "invalid characters"


class TestFormatWalletAddress:
    def test_shortens(self):
        assert format_wallet_address(OWNER_WALLET) == "7xKX...gAsU"

    def test_custom_lengths(self):
        assert format_wallet_address(OWNER_WALLET, prefix=6, suffix=2) == "7xKXtg...sU"

    def test_missing(self):
        assert format_wallet_address(None) == "<none>"
