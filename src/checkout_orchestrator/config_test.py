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

"""Tests for configuration and the product catalog."""

from decimal import Decimal
import json
import os

from absl import flags
from absl.testing import absltest
from absl.testing import flagsaver

from checkout_orchestrator import config
from checkout_orchestrator.catalog import Catalog
from checkout_orchestrator.catalog import load_catalog
from checkout_orchestrator.enums import ProcessorEnvironment
from checkout_orchestrator.enums import ValidationKind
from checkout_orchestrator.exceptions import ValidationError
from checkout_orchestrator.models import Product

FLAGS = flags.FLAGS


class ConfigTest(absltest.TestCase):

  def setUp(self):
    super().setUp()
    if not FLAGS.is_parsed():
      FLAGS.mark_as_parsed()

  def test_unconfigured_processors(self):
    with flagsaver.flagsaver(
        orders_client_id=None, unified_api_key=None
    ):
      self.assertIsNone(config.orders_config_from_flags())
      self.assertIsNone(config.unified_config_from_flags())

  def test_orders_config_from_flags(self):
    with flagsaver.flagsaver(
        orders_client_id="client",
        orders_client_secret="secret",
        environment="production",
    ):
      orders = config.orders_config_from_flags()

    self.assertEqual(orders.environment, ProcessorEnvironment.PRODUCTION)
    self.assertEqual(orders.api_base, "https://api-m.paypal.com")

  def test_unified_config_from_flags(self):
    with flagsaver.flagsaver(
        unified_api_key="key",
        unified_merchant_account="Merchant",
        environment="sandbox",
    ):
      unified = config.unified_config_from_flags()

    self.assertEqual(unified.api_base, config.UNIFIED_TEST_API_BASE)

  def test_checkout_settings_from_flags(self):
    with flagsaver.flagsaver(checkout_budget_minutes=10, brand_name="Shop"):
      settings = config.checkout_settings_from_flags()

    self.assertEqual(settings.budget_minutes, 10)
    self.assertEqual(settings.brand_name, "Shop")


class CatalogTest(absltest.TestCase):

  def test_sample_catalog(self):
    product = load_catalog(None).lookup("sku1")
    self.assertEqual(product.price, Decimal("1.00"))
    self.assertEqual(product.currency, "USD")

  def test_unknown_product(self):
    with self.assertRaises(ValidationError) as cm:
      Catalog().lookup("nope")
    self.assertEqual(cm.exception.kind, ValidationKind.UNKNOWN_PRODUCT)

  def test_from_json_file(self):
    path = os.path.join(self.create_tempdir().full_path, "products.json")
    with open(path, "w") as f:
      json.dump(
          [
              {"product_ref": "mug", "name": "Mug", "price": "12.50"},
              {
                  "product_ref": "ebook",
                  "name": "E-book",
                  "price": "4.99",
                  "category": "DIGITAL_GOODS",
              },
          ],
          f,
      )

    catalog = load_catalog(path)

    self.assertEqual(catalog.lookup("mug").price, Decimal("12.50"))
    self.assertEqual(catalog.lookup("ebook").category, "DIGITAL_GOODS")

  def test_negative_price_is_rejected(self):
    with self.assertRaises(ValueError):
      Catalog([Product(product_ref="x", name="X", price=Decimal("-1"))])


if __name__ == "__main__":
  absltest.main()
