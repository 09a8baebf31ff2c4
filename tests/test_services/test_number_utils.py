import math

from climate_seal.services.number_utils import number_or, number_to_str, parse_float, to_number


def test_to_number_treats_blank_as_zero_and_junk_as_nan():
    assert to_number("") == 0
    assert to_number(None) == 0
    assert to_number(" 12.5 ") == 12.5
    assert to_number("1e3") == 1000
    assert math.isnan(to_number("12kg"))


def test_parse_float_reads_leading_number():
    assert parse_float("12.5kg") == 12.5
    assert parse_float("  -3") == -3
    assert math.isnan(parse_float("kg"))
    assert math.isnan(parse_float(None))


def test_number_or_falls_back_on_zero_and_nan():
    assert number_or("0", 1.0) == 1.0
    assert number_or("abc", 1.0) == 1.0
    assert number_or("4", 1.0) == 4.0


def test_number_to_str_matches_browser_rendering():
    assert number_to_str(3.0) == "3"
    assert number_to_str(100.0) == "100"
    assert number_to_str(0.1 + 0.2) == "0.30000000000000004"
    assert number_to_str(0.000001) == "0.000001"
    assert number_to_str(1e-7) == "1e-7"
    assert number_to_str(1e21) == "1e+21"
    assert number_to_str(-2.5) == "-2.5"
    assert number_to_str(math.nan) == "NaN"
