"""Value classification and metric name sanitisation for upstream variables"""
import math
import re
from metrics.models import ParsedValue, VariableKind


_BOOLEAN_RE = re.compile(r'^(true|false)$', re.IGNORECASE)
_NUMBER_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$', re.ASCII)
_UNSAFE_RUN_RE = re.compile(r'[^a-z0-9]+')


def parse_value(raw: str) -> ParsedValue:
    """Classify a raw value body as boolean, number or string.

    The upstream formats decimals with a comma in some locales, so the first
    comma is read as the decimal point.
    """
    value = raw.strip()

    if _BOOLEAN_RE.match(value):
        return ParsedValue(VariableKind.BOOLEAN, value.lower() == "true")

    normalised = value.replace(',', '.', 1)
    if _NUMBER_RE.match(normalised):
        try:
            number = float(normalised)
        except (ValueError, OverflowError):
            number = math.nan
        if math.isfinite(number):
            return ParsedValue(VariableKind.NUMBER, number)

    return ParsedValue(VariableKind.STRING, value)


def sanitise_metric_name(name: str) -> str:
    """Map an arbitrary variable name onto [a-z0-9_]"""
    return _UNSAFE_RUN_RE.sub('_', name.lower()).strip('_')
