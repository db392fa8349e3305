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

"""Data models for the checkout orchestrator.

These models cover three groups:
- Domain records owned by the lifecycles (`PurchaseIntent`, `VaultToken`,
  `SettlementResult`).
- Values exchanged with the processor gateways (`IntentDraft`, `RemoteIntent`).
- Request and response bodies of the service surface.

Amounts are `Decimal` values with two fractional digits and serialize to JSON
as strings, so "1.09" never turns into 1.0900000000000001 on the way out.
"""

import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator

from .enums import IntentStatus
from .enums import PaymentSourceType
from .enums import ShippingPreference
from .enums import VaultTokenStatus


class ShippingAddress(BaseModel):
  """A shipping address in processor-neutral field names."""

  recipient_name: Optional[str] = None
  street_line_1: Optional[str] = None
  street_line_2: Optional[str] = None
  locality: Optional[str] = None
  region: Optional[str] = None
  postal_code: Optional[str] = None
  country_code: Optional[str] = None

  def has_street_level_fields(self) -> bool:
    return all(
        (self.street_line_1, self.locality, self.postal_code, self.country_code)
    )


class Link(BaseModel):
  href: str
  rel: str
  method: Optional[str] = None


class Product(BaseModel):
  product_ref: str
  name: str
  price: Decimal
  currency: str = "USD"
  category: str = "PHYSICAL_GOODS"


class PriceBreakdown(BaseModel):
  """Server-computed amounts of one intent."""

  model_config = ConfigDict(frozen=True)

  subtotal: Decimal
  tax_amount: Decimal
  total_amount: Decimal
  currency: str

  @model_validator(mode="after")
  def _check_total(self) -> "PriceBreakdown":
    if self.total_amount != self.subtotal + self.tax_amount:
      raise ValueError("total_amount must equal subtotal + tax_amount")
    return self


class Payer(BaseModel):
  payer_id: Optional[str] = None
  email: Optional[str] = None
  given_name: Optional[str] = None
  surname: Optional[str] = None


class Capture(BaseModel):
  id: str
  amount: Optional[Decimal] = None
  currency: Optional[str] = None
  # Informational only; the gateway has already folded it into the
  # settlement status.
  remote_status: Optional[str] = None
  final_capture: Optional[bool] = None


class SettlementResult(BaseModel):
  id: str
  status: IntentStatus
  payer: Optional[Payer] = None
  captures: List[Capture] = Field(default_factory=list)
  vault_id: Optional[str] = None
  raw: Dict[str, Any] = Field(default_factory=dict, exclude=True)


class IntentDraft(BaseModel):
  """Everything a gateway needs to open a remote intent."""

  reference: str
  product: Product
  description: str
  breakdown: PriceBreakdown
  shipping_address: Optional[ShippingAddress] = None
  shipping_preference: ShippingPreference = ShippingPreference.GET_FROM_FILE
  payment_source: PaymentSourceType = PaymentSourceType.PAYPAL
  request_vaulting: bool = False
  vault_usage_type: str = "MERCHANT"
  vault_customer_type: str = "CONSUMER"
  brand_name: str = "Your Store"
  return_url: str
  cancel_url: str
  payment_method_data: Dict[str, Any] = Field(default_factory=dict)
  shopper_reference: Optional[str] = None


class RemoteIntent(BaseModel):
  """A gateway's translated view of a remote intent."""

  intent_id: str
  # None when the processor did not report a status for this call.
  status: Optional[IntentStatus] = None
  approval_links: List[Link] = Field(default_factory=list)
  client_action: Optional[Dict[str, Any]] = None
  processor_data: Optional[str] = None
  settlement: Optional[SettlementResult] = None


class PurchaseIntent(BaseModel):
  """One checkout attempt, mirrored from the remote processor."""

  intent_id: str
  status: IntentStatus
  product_ref: str
  description: str
  subtotal: Decimal
  tax_amount: Decimal
  total_amount: Decimal
  currency: str
  shipping_region: Optional[str] = None
  shipping_address: Optional[ShippingAddress] = None
  shipping_preference: ShippingPreference = ShippingPreference.GET_FROM_FILE
  payment_source: PaymentSourceType = PaymentSourceType.PAYPAL
  created_at: datetime.datetime
  approval_links: List[Link] = Field(default_factory=list)
  client_action: Optional[Dict[str, Any]] = None
  processor_data: Optional[str] = None
  settlement: Optional[SettlementResult] = None

  @model_validator(mode="after")
  def _check_total(self) -> "PurchaseIntent":
    if self.total_amount != self.subtotal + self.tax_amount:
      raise ValueError("total_amount must equal subtotal + tax_amount")
    return self

  @property
  def breakdown(self) -> PriceBreakdown:
    return PriceBreakdown(
        subtotal=self.subtotal,
        tax_amount=self.tax_amount,
        total_amount=self.total_amount,
        currency=self.currency,
    )

  def with_changes(self, **changes: Any) -> "PurchaseIntent":
    """Returns a validated copy with `changes` applied."""
    data = dict(self)
    data.update(changes)
    return PurchaseIntent.model_validate(data)


class VaultToken(BaseModel):
  setup_token_id: str
  status: VaultTokenStatus
  payment_token_id: Optional[str] = None
  customer_id: Optional[str] = None
  approval_links: List[Link] = Field(default_factory=list)


class UsageContext(BaseModel):
  """How a vaulted payment method will be used."""

  usage_type: str = "MERCHANT"
  brand_name: Optional[str] = None
  return_url: Optional[str] = None
  cancel_url: Optional[str] = None
  shipping_preference: ShippingPreference = ShippingPreference.GET_FROM_FILE


# Request bodies. Unknown fields are dropped, so price fields a client sends
# along never reach the lifecycle.


class CreateIntentRequest(BaseModel):
  model_config = ConfigDict(extra="ignore")

  product_ref: str
  shipping_region: Optional[str] = None
  shipping_address: Optional[ShippingAddress] = None
  shipping_preference: ShippingPreference = ShippingPreference.GET_FROM_FILE
  payment_source: PaymentSourceType = PaymentSourceType.PAYPAL
  description: Optional[str] = None
  request_vaulting: bool = False
  vault_usage_type: str = "MERCHANT"
  vault_customer_type: str = "CONSUMER"
  payment_method_data: Dict[str, Any] = Field(default_factory=dict)
  shopper_reference: Optional[str] = None
  return_url: Optional[str] = None
  cancel_url: Optional[str] = None


class AmendIntentRequest(BaseModel):
  model_config = ConfigDict(extra="ignore")

  shipping_region: Optional[str] = None
  shipping_address: Optional[ShippingAddress] = None
  processor_data: Optional[str] = None


class FinalizeIntentRequest(BaseModel):
  details: Optional[Dict[str, Any]] = None


class TokenizeRequest(BaseModel):
  setup_token_id: str


class ChargeRequest(BaseModel):
  payment_token_id: str
  amount: Decimal
  currency: str = "USD"
  description: str = "Charge from vaulted payment"


# Response bodies.


class CreateIntentResponse(BaseModel):
  intent_id: str
  status: IntentStatus
  approval_links: List[Link] = Field(default_factory=list)
  client_action: Optional[Dict[str, Any]] = None


class AmendIntentResponse(BaseModel):
  intent_id: str
  subtotal: Decimal
  tax_amount: Decimal
  total_amount: Decimal
  currency: str
  shipping_region: Optional[str] = None


class TokenizeResponse(BaseModel):
  payment_token_id: str
  customer_id: Optional[str] = None
  status: VaultTokenStatus = VaultTokenStatus.TOKENIZED
