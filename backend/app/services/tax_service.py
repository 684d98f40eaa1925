# Overview: GST helpers; inclusive price back-calculation and CGST/SGST totals.

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


def round_money(value: float) -> float:
    return round(float(value), 2)


def base_price_from_inclusive(inclusive_price: float, cgst_rate: float, sgst_rate: float) -> float:
    """Strip CGST + SGST from a tax-inclusive price."""
    total_rate = (cgst_rate or 0) + (sgst_rate or 0)
    return round_money(inclusive_price / (1 + total_rate / 100))


@dataclass(frozen=True)
class TaxableLine:
    line_total: float
    cgst_rate: float
    sgst_rate: float


@dataclass(frozen=True)
class GstBreakdown:
    subtotal: float
    cgst: float
    sgst: float

    @property
    def gross(self) -> float:
        return round_money(self.subtotal + self.cgst + self.sgst)


def compute_gst(lines: Iterable[TaxableLine]) -> GstBreakdown:
    """Subtotal and per-component tax from line totals and each product's rates."""
    subtotal = cgst = sgst = 0.0
    for line in lines:
        subtotal += line.line_total
        cgst += line.line_total * (line.cgst_rate or 0) / 100
        sgst += line.line_total * (line.sgst_rate or 0) / 100
    return GstBreakdown(subtotal=round_money(subtotal), cgst=round_money(cgst), sgst=round_money(sgst))
