"""Default substitution rules and currency unit setup."""

from __future__ import annotations

import re
from collections.abc import Iterable

from numerals.engine import MathEngine
from numerals.model.blocks import StringReplaceRule
from numerals.model.settings import CurrencySymbol, NumeralsSettings

# Breaks comma-separated arguments with three digits, e.g. max(100,200)
THOUSANDS_SEPARATOR_RULE = StringReplaceRule(pattern=re.compile(r",(\d{3})"), replacement=r"\1")


def currency_rules(currency_map: Iterable[CurrencySymbol]) -> list[StringReplaceRule]:
    """``$12.50`` -> ``12.50 USD`` for each symbol in *currency_map*."""
    return [
        StringReplaceRule(
            pattern=re.compile(re.escape(entry.symbol) + r"([\d.]+)"),
            replacement=r"\1 " + entry.currency,
        )
        for entry in currency_map
    ]


def build_preprocessors(settings: NumeralsSettings | None = None) -> list[StringReplaceRule]:
    """The standard rule list: thousands separators, then currency symbols."""
    settings = settings or NumeralsSettings()
    return [THOUSANDS_SEPARATOR_RULE, *currency_rules(settings.currency_map())]


def ensure_currency_units(engine: MathEngine, currency_map: Iterable[CurrencySymbol]) -> None:
    """Define every currency code (and its lowercase alias) as a unit."""
    for entry in currency_map:
        if not entry.currency:
            continue
        engine.create_unit(entry.currency, aliases=[entry.currency.lower()])
