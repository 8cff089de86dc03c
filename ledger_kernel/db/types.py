"""
Module: ledger_kernel.db.types
Responsibility: Money precision, rounding and currency validation shared by
    every model, service and report.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.

Invariants enforced:
    - No floats.  Amounts are Decimal end to end.
    - Currency codes are upper-case ISO 4217.
    - Balance tolerance derives from the currency's minor unit: one
      hundredth of a minor unit (0.0001 for a two-decimal currency).

Failure modes:
    - InvalidCurrencyError on an unknown currency code.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

from ledger_kernel.exceptions import InvalidCurrencyError

Money = Annotated[Decimal, Numeric(38, 9)]
Currency = Annotated[str, String(3)]

MONEY_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")

# Minor-unit exponent per currency.  Anything not listed uses two decimals.
CURRENCY_MINOR_UNITS: dict[str, int] = {
    "JPY": 0, "KRW": 0, "VND": 0, "CLP": 0, "ISK": 0, "UGX": 0,
    "XAF": 0, "XOF": 0, "XPF": 0, "PYG": 0, "RWF": 0, "KMF": 0,
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
}
DEFAULT_MINOR_UNITS = 2


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    The only rounding helper used for financial values.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)


def minor_units(currency: str) -> int:
    """Number of decimal places for ``currency``."""
    return CURRENCY_MINOR_UNITS.get(currency.upper(), DEFAULT_MINOR_UNITS)


def balance_tolerance(currency: str) -> Decimal:
    """
    Largest debit/credit difference still treated as balanced.

    One hundredth of the currency's minor unit:
        MYR -> 0.0001, JPY -> 0.01, KWD -> 0.00001
    """
    return Decimal(1).scaleb(-(minor_units(currency) + 2))


def to_decimal(value) -> Decimal:
    """Coerce int / str / Decimal into Decimal.  Floats are rejected."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Monetary amounts must not be {type(value).__name__}")
    return Decimal(str(value))


ISO_4217_CURRENCIES: frozenset[str] = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND
    BOB BRL BSD BTN BWP BYN BZD CAD CDF CHF CLP CNY COP CRC CUP CVE CZK DJF
    DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP GMD GNF GTQ GYD HKD
    HNL HTG HUF IDR ILS INR IQD IRR ISK JMD JOD JPY KES KGS KHR KMF KPW KRW
    KWD KYD KZT LAK LBP LKR LRD LSL LYD MAD MDL MGA MKD MMK MNT MOP MRU MUR
    MVR MWK MXN MYR MZN NAD NGN NIO NOK NPR NZD OMR PAB PEN PGK PHP PKR PLN
    PYG QAR RON RSD RUB RWF SAR SBD SCR SDG SEK SGD SHP SLE SOS SRD SSP STN
    SYP SZL THB TJS TMT TND TOP TRY TTD TWD TZS UAH UGX USD UYU UZS VES VND
    VUV WST XAF XCD XOF XPF YER ZAR ZMW ZWL
    """.split()
)


def validate_currency(currency: str) -> str:
    """
    Return the normalised (upper-case, trimmed) currency code.

    Raises:
        InvalidCurrencyError: If the code is not ISO 4217.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(str(currency))

    normalized = currency.strip().upper()
    if normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return normalized
