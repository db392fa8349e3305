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

"""Gateway for the unified-checkout processor (Adyen Checkout v71 API).

The processor authenticates with a single pre-shared API key and exposes
every operation as a POST through `call`. The lifecycle verbs map onto three
sub-flows:
- payment initiation: `/payments`
- detail submission (the finalize step): `/payments/details`
- order amendment for wallet payments: `/paypal/updateOrder`

Amounts travel in minor units. The processor keeps no readable intent record,
so `fetch_intent` returns None.
"""

from decimal import Decimal
from decimal import ROUND_HALF_UP
import logging
from typing import Any, Dict, Optional

import httpx

from ..config import UnifiedGatewayConfig
from ..enums import IntentStatus
from ..enums import PaymentSourceType
from ..enums import ValidationKind
from ..exceptions import RemoteProcessorError
from ..exceptions import ValidationError
from ..models import Capture
from ..models import IntentDraft
from ..models import Payer
from ..models import PriceBreakdown
from ..models import PurchaseIntent
from ..models import RemoteIntent
from ..models import SettlementResult
from ..models import ShippingAddress
from ..tax_policy import quantize
from . import base

logger = logging.getLogger(__name__)

RESULT_CODES = {
    "Authorised": IntentStatus.FINALIZED,
    "Pending": IntentStatus.APPROVED,
    "Received": IntentStatus.APPROVED,
    "RedirectShopper": IntentStatus.CREATED,
    "IdentifyShopper": IntentStatus.CREATED,
    "ChallengeShopper": IntentStatus.CREATED,
    "PresentToShopper": IntentStatus.CREATED,
    "Refused": IntentStatus.FAILED,
    "Error": IntentStatus.FAILED,
    "Cancelled": IntentStatus.FAILED,
}

WALLET_SOURCES = frozenset({PaymentSourceType.PAYPAL, PaymentSourceType.VENMO})

# Fields the client-side component collects and the processor wants verbatim.
CLIENT_FIELDS = ("browserInfo", "shopperName", "shopperEmail", "origin")


def to_minor_units(amount: Decimal) -> int:
  return int((quantize(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> Decimal:
  return quantize(Decimal(value) / 100)


def translate_result_code(raw: Optional[str]) -> Optional[IntentStatus]:
  status = RESULT_CODES.get(raw or "")
  if raw and status is None:
    logger.warning("Unrecognized result code %r", raw)
  return status


class UnifiedGateway(base.ProcessorGateway):
  """Talks to the unified-checkout processor with a pre-shared API key."""

  name = "unified"
  SELF_ADDRESSED_SOURCES = frozenset({
      PaymentSourceType.PAYPAL,
      PaymentSourceType.VENMO,
      PaymentSourceType.GOOGLE_PAY,
  })

  def __init__(self, config: UnifiedGatewayConfig, client: httpx.AsyncClient):
    super().__init__(client)
    self.config = config

  async def call(
      self,
      endpoint: str,
      body: Dict[str, Any],
      include_merchant_account: bool = True,
  ) -> Dict[str, Any]:
    """Posts `body` to `endpoint` and returns the decoded reply."""
    payload = dict(body)
    if include_merchant_account:
      payload["merchantAccount"] = self.config.merchant_account
    response = await self._send(
        "POST",
        f"{self.config.api_base}{endpoint}",
        operation=f"call {endpoint}",
        headers={
            "x-api-key": self.config.api_key,
            "Content-Type": "application/json",
        },
        json=payload,
    )
    return self._decode(response, f"call {endpoint}")

  def build_payment_request(self, draft: IntentDraft) -> Dict[str, Any]:
    """Builds the payment initiation body for `draft`."""
    breakdown = draft.breakdown
    address = draft.shipping_address
    request: Dict[str, Any] = {
        "amount": {
            "currency": breakdown.currency,
            "value": to_minor_units(breakdown.total_amount),
        },
        "reference": draft.reference,
        "paymentMethod": draft.payment_method_data.get("paymentMethod", {}),
        "returnUrl": draft.return_url,
        "channel": "Web",
        "countryCode": (address.country_code if address else None) or "US",
    }
    for client_field in CLIENT_FIELDS:
      if draft.payment_method_data.get(client_field):
        request[client_field] = draft.payment_method_data[client_field]

    if draft.payment_source in WALLET_SOURCES:
      request["additionalData"] = {"paypal.intent": "sale"}

    if draft.request_vaulting:
      request["shopperReference"] = draft.shopper_reference or draft.reference
      request["recurringProcessingModel"] = "Subscription"
      request["storePaymentMethod"] = True
      request["shopperInteraction"] = "Ecommerce"

    if address and not self.resolves_own_address(draft.payment_source):
      request["deliveryAddress"] = {
          "street": address.street_line_1,
          "houseNumberOrName": address.street_line_2 or "",
          "city": address.locality,
          "stateOrProvince": address.region,
          "postalCode": address.postal_code,
          "country": address.country_code,
      }
    return request

  async def create_intent(self, draft: IntentDraft) -> RemoteIntent:
    data = await self.call("/payments", self.build_payment_request(draft))
    status = translate_result_code(data.get("resultCode"))
    if status == IntentStatus.FAILED:
      raise RemoteProcessorError(
          f"Payment initiation {data.get('resultCode')}:"
          f" {data.get('refusalReason', 'no reason given')}",
          200,
          data,
      )

    intent_id = data.get("pspReference") or draft.reference
    action = data.get("action")
    processor_data = (action or {}).get("paymentData") or data.get(
        "paymentData"
    )
    settlement = None
    if status == IntentStatus.FINALIZED:
      settlement = settlement_from_result(data, intent_id)
    return RemoteIntent(
        intent_id=intent_id,
        status=status or IntentStatus.CREATED,
        client_action=action,
        processor_data=processor_data,
        settlement=settlement,
    )

  async def amend_intent(
      self,
      intent: PurchaseIntent,
      breakdown: PriceBreakdown,
      shipping_address: Optional[ShippingAddress],
  ) -> Optional[RemoteIntent]:
    """Updates the wallet order amount.

    The processor only takes the amount here; the address has already done
    its job by selecting the tax rate.
    """
    del shipping_address  # Unused.
    if not intent.processor_data:
      raise ValidationError(
          ValidationKind.MISSING_PAYMENT_DETAILS,
          f"No paymentData available to amend intent {intent.intent_id}",
      )
    body = {
        "paymentData": intent.processor_data,
        "pspReference": intent.intent_id,
        "amount": {
            "currency": breakdown.currency,
            "value": to_minor_units(breakdown.total_amount),
        },
    }
    data = await self.call(
        "/paypal/updateOrder", body, include_merchant_account=False
    )
    if data.get("status") != "success":
      raise RemoteProcessorError(
          f"Failed to update order: status {data.get('status')!r}", 200, data
      )
    return RemoteIntent(
        intent_id=intent.intent_id,
        processor_data=data.get("paymentData") or intent.processor_data,
    )

  async def finalize_intent(
      self, intent: PurchaseIntent, details: Optional[Dict[str, Any]]
  ) -> SettlementResult:
    if not details:
      raise ValidationError(
          ValidationKind.MISSING_PAYMENT_DETAILS,
          f"Payment details are required to finalize intent {intent.intent_id}",
      )
    data = await self.call("/payments/details", details)
    return settlement_from_result(data, intent.intent_id)

  async def fetch_intent(self, intent_id: str) -> Optional[RemoteIntent]:
    del intent_id  # Unused.
    return None


def settlement_from_result(
    data: Dict[str, Any], fallback_id: str
) -> SettlementResult:
  """Translates a payment result into a settlement."""
  result_code = data.get("resultCode")
  # Anything unrecognized stays non-final so finalize can be repeated.
  status = translate_result_code(result_code) or IntentStatus.APPROVED
  if status == IntentStatus.CREATED:
    status = IntentStatus.APPROVED
  psp_reference = data.get("pspReference") or fallback_id

  captures = []
  amount = data.get("amount")
  if amount and "value" in amount:
    captures.append(
        Capture(
            id=psp_reference,
            amount=from_minor_units(amount["value"]),
            currency=amount.get("currency"),
            remote_status=result_code,
            final_capture=status == IntentStatus.FINALIZED,
        )
    )

  additional = data.get("additionalData") or {}
  payer = None
  email = additional.get("paypalEmail") or data.get("shopperEmail")
  payer_id = additional.get("paypalPayerId")
  if email or payer_id:
    payer = Payer(payer_id=payer_id, email=email)

  vault_id = additional.get("recurring.recurringDetailReference") or (
      data.get("tokenization") or {}
  ).get("storedPaymentMethodId")

  return SettlementResult(
      id=psp_reference,
      status=status,
      payer=payer,
      captures=captures,
      vault_id=vault_id,
      raw=data,
  )
