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

"""Tests for the tax policy."""

from decimal import Decimal

from absl.testing import absltest
from absl.testing import parameterized

from checkout_orchestrator import tax_policy


class TaxPolicyTest(parameterized.TestCase):

  def test_california_sample_product(self):
    self.assertEqual(tax_policy.tax(Decimal("1.00"), "CA"), Decimal("0.09"))
    self.assertEqual(tax_policy.total(Decimal("1.00"), "CA"), Decimal("1.09"))

  @parameterized.parameters(
      ("1.00", "CA"),
      ("19.99", "NY"),
      ("250.00", "MA"),
      ("0.01", "TN"),
      ("0.00", "WA"),
      ("12.34", "OR"),
      ("5.55", None),
      ("99.95", "ZZ"),
  )
  def test_total_is_subtotal_plus_tax(self, subtotal, region):
    subtotal = Decimal(subtotal)
    self.assertEqual(
        tax_policy.total(subtotal, region),
        subtotal + tax_policy.tax(subtotal, region),
    )

  @parameterized.parameters(None, "", "ZZ", "Ontario")
  def test_unknown_region_is_tax_free(self, region):
    self.assertEqual(tax_policy.rate_for(region), Decimal("0"))
    self.assertEqual(tax_policy.tax(Decimal("10.00"), region), Decimal("0.00"))

  def test_region_lookup_is_case_insensitive(self):
    self.assertEqual(tax_policy.rate_for(" ca "), tax_policy.rate_for("CA"))

  def test_rates_are_fractions(self):
    for region in tax_policy.US_STATE_TAX_RATES:
      rate = tax_policy.rate_for(region)
      self.assertGreaterEqual(rate, 0)
      self.assertLess(rate, 1)

  def test_tax_rounds_half_up(self):
    # 6.25% of 0.20 is 0.0125.
    self.assertEqual(tax_policy.tax(Decimal("0.20"), "MA"), Decimal("0.01"))
    # 6.25% of 0.40 is 0.025.
    self.assertEqual(tax_policy.tax(Decimal("0.40"), "MA"), Decimal("0.03"))

  def test_format_amount_has_two_digits(self):
    self.assertEqual(tax_policy.format_amount(Decimal("1")), "1.00")
    self.assertEqual(tax_policy.format_amount(Decimal("1.005")), "1.01")
    self.assertEqual(tax_policy.format_amount(Decimal("0.1")), "0.10")

  def test_negative_subtotal_is_rejected(self):
    with self.assertRaises(ValueError):
      tax_policy.price_breakdown(Decimal("-1.00"), "CA", "USD")

  def test_price_breakdown(self):
    breakdown = tax_policy.price_breakdown("1.00", "CA", "USD")
    self.assertEqual(breakdown.subtotal, Decimal("1.00"))
    self.assertEqual(breakdown.tax_amount, Decimal("0.09"))
    self.assertEqual(breakdown.total_amount, Decimal("1.09"))
    self.assertEqual(breakdown.currency, "USD")

  def test_recomputation_is_stable(self):
    first = tax_policy.price_breakdown(Decimal("1.00"), "CA", "USD")
    second = tax_policy.price_breakdown(Decimal("1.00"), "CA", "USD")
    self.assertEqual(
        tax_policy.format_amount(first.total_amount),
        tax_policy.format_amount(second.total_amount),
    )


if __name__ == "__main__":
  absltest.main()
