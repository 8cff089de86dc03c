"""Statutory tax codes (Malaysian SST) carried on accounts and journal lines."""

from enum import Enum


class TaxCode(str, Enum):
    """
    Sales and service tax classification of a line.

    sr   standard-rated
    zrl  zero-rated local supply
    es   exempt supply
    os   out of scope
    rs   relief supply
    gs   disregarded / group supply
    none not taxable
    """

    SR = "sr"
    ZRL = "zrl"
    ES = "es"
    OS = "os"
    RS = "rs"
    GS = "gs"
    NONE = "none"

    @property
    def label(self) -> str:
        return _TAX_CODE_LABELS[self]


_TAX_CODE_LABELS: dict[TaxCode, str] = {
    TaxCode.SR: "Standard Rated",
    TaxCode.ZRL: "Zero Rated Local",
    TaxCode.ES: "Exempt Supply",
    TaxCode.OS: "Out of Scope",
    TaxCode.RS: "Relief Supply",
    TaxCode.GS: "Disregarded Supply",
    TaxCode.NONE: "No Tax",
}
