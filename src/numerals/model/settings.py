"""User-facing configuration for block and inline evaluation."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, field_validator


class NumberFormat(str, Enum):
    """How numeric results are rendered to text."""

    SYSTEM = "System"
    FIXED = "Fixed"
    EXPONENTIAL = "Exponential"
    ENGINEERING = "Engineering"
    COMMA_THOUSANDS_PERIOD_DECIMAL = "Format_CommaThousands_PeriodDecimal"
    PERIOD_THOUSANDS_COMMA_DECIMAL = "Format_PeriodThousands_CommaDecimal"
    SPACE_THOUSANDS_COMMA_DECIMAL = "Format_SpaceThousands_CommaDecimal"
    INDIAN = "Format_Indian"


class CurrencySymbol(BaseModel):
    """A currency symbol and the ISO 4217 code it stands for."""

    symbol: str
    name: str
    currency: str


DEFAULT_CURRENCY_MAP: tuple[CurrencySymbol, ...] = (
    CurrencySymbol(symbol="$", name="dollar", currency="USD"),
    CurrencySymbol(symbol="€", name="euro", currency="EUR"),
    CurrencySymbol(symbol="£", name="pound", currency="GBP"),
    CurrencySymbol(symbol="¥", name="yen", currency="JPY"),
    CurrencySymbol(symbol="₹", name="rupee", currency="INR"),
)

DOLLAR_SIGN_CURRENCIES = frozenset({
    "USD", "CAD", "AUD", "NZD", "HKD", "SGD", "MXN", "TWD", "ARS", "CLP",
    "COP", "FJD", "JMD", "LRD", "NAD", "SBD", "SRD", "TTD", "BSD", "BBD",
    "BMD", "BND", "BZD", "GYD", "KYD", "XCD",
})

YEN_SIGN_CURRENCIES = frozenset({"JPY", "CNY"})


class NumeralsSettings(BaseModel):
    """Evaluation and display settings.

    Only settings that affect evaluation or the data handed to a renderer
    live here; layout and styling belong to the host.
    """

    result_separator: str = " → "
    hide_lines_without_markup_when_emitting: bool = True
    hide_emitter_markup_in_input: bool = True
    dollar_currency: str = "USD"
    yen_currency: str = "JPY"
    number_format: NumberFormat = NumberFormat.SYSTEM
    force_process_all_frontmatter: bool = False
    custom_currency: CurrencySymbol | None = None
    enable_inline: bool = True
    inline_result_trigger: str = "=:"
    inline_equation_trigger: str = "==:"

    @field_validator("dollar_currency")
    @classmethod
    def _known_dollar_currency(cls, v: str) -> str:
        return v if v in DOLLAR_SIGN_CURRENCIES else "USD"

    @field_validator("yen_currency")
    @classmethod
    def _known_yen_currency(cls, v: str) -> str:
        return v if v in YEN_SIGN_CURRENCIES else "JPY"

    def currency_map(self) -> list[CurrencySymbol]:
        """Default currency map with the configured dollar/yen codes applied."""
        result: list[CurrencySymbol] = []
        for entry in DEFAULT_CURRENCY_MAP:
            if entry.symbol == "$":
                entry = entry.model_copy(update={"currency": self.dollar_currency})
            elif entry.symbol == "¥":
                entry = entry.model_copy(update={"currency": self.yen_currency})
            result.append(entry)
        if self.custom_currency is not None:
            result.append(self.custom_currency)
        return result
