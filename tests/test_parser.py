"""Tests for value classification and metric name sanitisation"""
import pytest

from metrics.models import VariableKind
from upstream.parser import parse_value, sanitise_metric_name


class TestParseValue:
    """Test raw value classification"""

    @pytest.mark.parametrize("raw, expected", [
        ("true", True),
        ("TRUE", True),
        ("False", False),
        ("  false\r\n", False),
    ])
    def test_booleans(self, raw, expected):
        parsed = parse_value(raw)

        assert parsed.kind == VariableKind.BOOLEAN
        assert parsed.value is expected

    @pytest.mark.parametrize("raw, expected", [
        ("3,14", 3.14),
        ("3.14", 3.14),
        ("42", 42.0),
        ("-0,5", -0.5),
        ("  17.25 \n", 17.25),
        ("1e3", 1000.0),
        (".5", 0.5),
    ])
    def test_numbers(self, raw, expected):
        parsed = parse_value(raw)

        assert parsed.kind == VariableKind.NUMBER
        assert parsed.value == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["abc", "", "   ", "1,5,3", "NaN", "Infinity", "1_000", "ON", "\u0663,\u0665"])
    def test_strings(self, raw):
        parsed = parse_value(raw)

        assert parsed.kind == VariableKind.STRING
        assert parsed.value == raw.strip()

    def test_gauge_values(self):
        assert parse_value("true").as_gauge_value() == 1.0
        assert parse_value("false").as_gauge_value() == 0.0
        assert parse_value("3,5").as_gauge_value() == 3.5

    def test_string_has_no_gauge_value(self):
        with pytest.raises(ValueError):
            parse_value("OFFLINE").as_gauge_value()


class TestSanitiseMetricName:
    """Test metric name sanitisation"""

    @pytest.mark.parametrize("name, expected", [
        ("VALVE_M01/OPEN!!", "valve_m01_open"),
        ("__x__", "x"),
        ("CORE TEMP (C)", "core_temp_c"),
        ("a--b..c", "a_b_c"),
        ("!!!", ""),
    ])
    def test_sanitise(self, name, expected):
        assert sanitise_metric_name(name) == expected

    @pytest.mark.parametrize("name", ["VALVE_M01/OPEN!!", "Pump 2 Speed %", "already_clean"])
    def test_idempotent(self, name):
        once = sanitise_metric_name(name)

        assert sanitise_metric_name(once) == once
