import pytest

from app.shared.colombia import (
    format_colombian_phone,
    format_phone_for_display,
    get_colombian_mobile_number,
    validate_colombian_phone,
)


class TestFormatColombianPhone:
    def test_national_digits(self):
        assert format_colombian_phone("3101234567") == "+57 310 123 4567"

    def test_with_country_code(self):
        assert format_colombian_phone("573101234567") == "+57 310 123 4567"
        assert format_colombian_phone("+57 (310) 123-4567") == "+57 310 123 4567"

    def test_with_international_prefix(self):
        assert format_colombian_phone("0057 310 123 4567") == "+57 310 123 4567"

    def test_unrecognized_input_is_returned_unchanged(self):
        assert format_colombian_phone("12345") == "12345"


class TestValidateColombianPhone:
    @pytest.mark.parametrize(
        "phone",
        ["+57 301 234 5678", "+57 305 000 0000", "+57 310 123 4567", "+57 321 999 9999", "+57 350 111 2222", "+57 353 111 2222"],
    )
    def test_mobile_prefixes_accepted(self, phone):
        assert validate_colombian_phone(phone) is True

    @pytest.mark.parametrize(
        "phone",
        ["+57 300 123 4567", "+57 306 123 4567", "+57 322 123 4567", "+57 354 123 4567", "+57 601 123 4567"],
    )
    def test_unassigned_prefixes_rejected(self, phone):
        assert validate_colombian_phone(phone) is False

    @pytest.mark.parametrize("phone", ["3101234567", "+573101234567", "+57 310 1234567", "", None, "123"])
    def test_wrong_shape_rejected(self, phone):
        assert validate_colombian_phone(phone) is False


def test_mobile_number_strips_country_code():
    assert get_colombian_mobile_number("+57 310 123 4567") == "3101234567"
    assert get_colombian_mobile_number("3001234567") is None


def test_display_falls_back_to_input():
    assert format_phone_for_display("573151234567") == "+57 315 123 4567"
    assert format_phone_for_display("555-1234") == "555-1234"
