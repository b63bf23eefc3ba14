from app.shared.colombia import (
    format_peso_cop,
    format_peso_for_input,
    format_peso_short,
    is_valid_peso_string,
    parse_peso_string,
)


class TestFormatPesoCop:
    def test_groups_thousands_with_dots(self):
        assert format_peso_cop(1500000) == "$ 1.500.000"

    def test_small_amount(self):
        assert format_peso_cop(500) == "$ 500"

    def test_decimals_use_comma(self):
        assert format_peso_cop(2500.5, show_decimals=True) == "$ 2.500,50"

    def test_rounds_half_up(self):
        assert format_peso_cop(1999.5) == "$ 2.000"

    def test_negative(self):
        assert format_peso_cop(-2500) == "-$ 2.500"

    def test_without_symbol(self):
        assert format_peso_cop(45000, show_symbol=False) == "45.000"

    def test_short_format_flag(self):
        assert format_peso_cop(1500000, use_short_format=True) == "$ 1,5M"


class TestFormatPesoShort:
    def test_millions(self):
        assert format_peso_short(1500000) == "$ 1,5M"

    def test_whole_value_drops_fraction(self):
        assert format_peso_short(2000000) == "$ 2M"

    def test_thousands(self):
        assert format_peso_short(50000) == "$ 50K"

    def test_billions(self):
        assert format_peso_short(3200000000) == "$ 3,2B"

    def test_below_thousand_uses_full_format(self):
        assert format_peso_short(800) == "$ 800"


class TestParsePesoString:
    def test_formatted_amount(self):
        assert parse_peso_string("$ 1.500.000") == 1500000

    def test_currency_code_and_decimals(self):
        assert parse_peso_string("COP 2.500,50") == 2500.5

    def test_short_forms(self):
        assert parse_peso_string("1,5M") == 1500000
        assert parse_peso_string("500K") == 500000

    def test_invalid(self):
        assert parse_peso_string("") is None
        assert parse_peso_string(None) is None
        assert parse_peso_string("abc") is None
        assert parse_peso_string("1,2,3") is None

    def test_input_format_round_trip(self):
        for amount in (0, 999, 1000, 45000, 1500000, 1400000000):
            assert parse_peso_string(format_peso_for_input(amount)) == amount


def test_is_valid_peso_string():
    assert is_valid_peso_string("$ 45.000")
    assert not is_valid_peso_string("pesos")
