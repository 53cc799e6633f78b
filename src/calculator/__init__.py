from .decimal_math import format_dollars, progressive_tax, round_cents
from .vita_rules_engine import (
    MARYLAND_COUNTIES,
    SUPPORTED_TAX_YEARS,
    UnsupportedTaxYearError,
    VitaTaxRulesEngine,
    get_county,
)

__all__ = [
    "format_dollars",
    "progressive_tax",
    "round_cents",
    "MARYLAND_COUNTIES",
    "SUPPORTED_TAX_YEARS",
    "UnsupportedTaxYearError",
    "VitaTaxRulesEngine",
    "get_county",
]
