#   Copyright 2026 UCP Authors
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

"""Sales tax lookup and amount arithmetic.

Rates are sample US state percentages. A region that is missing from the table
is taxed at zero: the policy fails open rather than blocking checkout.

All arithmetic is done on `Decimal` and rounded half-up to cents, and
`format_amount` is the single place amounts become strings. Recomputing the
same subtotal and region at create time and again at amend time therefore
always yields identical wire values.
"""

from decimal import Decimal
from decimal import ROUND_HALF_UP
from typing import Optional, Union

from .models import PriceBreakdown

CENTS = Decimal("0.01")

# Percent per US state.
US_STATE_TAX_RATES = {
    "AL": Decimal("9.0"),
    "AK": Decimal("2.0"),
    "AZ": Decimal("8.0"),
    "AR": Decimal("9.5"),
    "CA": Decimal("8.5"),
    "CO": Decimal("8.0"),
    "CT": Decimal("6.5"),
    "DE": Decimal("0.0"),
    "FL": Decimal("7.0"),
    "GA": Decimal("7.5"),
    "HI": Decimal("4.5"),
    "ID": Decimal("6.0"),
    "IL": Decimal("9.0"),
    "IN": Decimal("7.0"),
    "IA": Decimal("7.0"),
    "KS": Decimal("8.5"),
    "KY": Decimal("6.0"),
    "LA": Decimal("9.5"),
    "ME": Decimal("5.5"),
    "MD": Decimal("6.0"),
    "MA": Decimal("6.25"),
    "MI": Decimal("6.0"),
    "MN": Decimal("7.5"),
    "MS": Decimal("7.0"),
    "MO": Decimal("8.0"),
    "MT": Decimal("0.0"),
    "NE": Decimal("7.0"),
    "NV": Decimal("8.0"),
    "NH": Decimal("0.0"),
    "NJ": Decimal("6.5"),
    "NM": Decimal("8.0"),
    "NY": Decimal("8.5"),
    "NC": Decimal("7.0"),
    "ND": Decimal("7.0"),
    "OH": Decimal("7.0"),
    "OK": Decimal("9.0"),
    "OR": Decimal("0.0"),
    "PA": Decimal("6.5"),
    "RI": Decimal("7.0"),
    "SC": Decimal("7.5"),
    "SD": Decimal("6.5"),
    "TN": Decimal("9.5"),
    "TX": Decimal("8.0"),
    "UT": Decimal("7.0"),
    "VT": Decimal("6.0"),
    "VA": Decimal("5.5"),
    "WA": Decimal("9.0"),
    "WV": Decimal("6.5"),
    "WI": Decimal("5.5"),
    "WY": Decimal("5.5"),
}

Amount = Union[Decimal, str, int]


def _to_decimal(value: Amount) -> Decimal:
  amount = Decimal(value) if not isinstance(value, Decimal) else value
  if amount < 0:
    raise ValueError(f"Amount must not be negative: {value}")
  return amount


def quantize(amount: Decimal) -> Decimal:
  return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
  """Formats an amount with exactly two fractional digits."""
  return str(quantize(amount))


def rate_for(region: Optional[str]) -> Decimal:
  """Returns the tax rate for `region` as a fraction in [0, 1)."""
  if not region:
    return Decimal("0")
  percent = US_STATE_TAX_RATES.get(region.strip().upper())
  if percent is None:
    return Decimal("0")
  return percent / 100


def tax(subtotal: Amount, region: Optional[str]) -> Decimal:
  return quantize(quantize(_to_decimal(subtotal)) * rate_for(region))


def total(subtotal: Amount, region: Optional[str]) -> Decimal:
  return quantize(_to_decimal(subtotal)) + tax(subtotal, region)


def price_breakdown(
    subtotal: Amount, region: Optional[str], currency: str
) -> PriceBreakdown:
  """Computes subtotal, tax and total for one intent."""
  base = quantize(_to_decimal(subtotal))
  tax_amount = tax(base, region)
  return PriceBreakdown(
      subtotal=base,
      tax_amount=tax_amount,
      total_amount=base + tax_amount,
      currency=currency,
  )
