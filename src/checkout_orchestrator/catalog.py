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

"""Trusted price source.

The catalog is the only place a subtotal comes from. Prices a client sends
along with a request are never consulted.
"""

from decimal import Decimal
import json
import logging
from typing import Dict, Iterable, Optional

from .enums import ValidationKind
from .exceptions import ValidationError
from .models import Product

logger = logging.getLogger(__name__)

SAMPLE_PRODUCTS = (
    Product(product_ref="sku1", name="Sample Product", price=Decimal("1.00")),
)


class Catalog:
  """In-memory product catalog keyed by product reference."""

  def __init__(self, products: Iterable[Product] = SAMPLE_PRODUCTS):
    self._products: Dict[str, Product] = {}
    for product in products:
      if product.price < 0:
        raise ValueError(f"Product {product.product_ref} has a negative price")
      self._products[product.product_ref] = product

  @classmethod
  def from_json_file(cls, path: str) -> "Catalog":
    """Loads products from a JSON list of product objects."""
    with open(path, "r") as f:
      products_data = json.load(f)
    products = [Product.model_validate(p) for p in products_data]
    logger.info("Loaded %d products from %s", len(products), path)
    return cls(products)

  def lookup(self, product_ref: str) -> Product:
    product = self._products.get(product_ref)
    if not product:
      raise ValidationError(
          ValidationKind.UNKNOWN_PRODUCT, f"Product {product_ref} not found"
      )
    return product


def load_catalog(path: Optional[str]) -> Catalog:
  if path:
    return Catalog.from_json_file(path)
  return Catalog()
