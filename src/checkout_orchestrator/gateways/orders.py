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

"""Gateway for the orders processor (PayPal Orders v2 and Vault v3 APIs).

Every logical operation starts with a fresh client-credentials exchange; the
bearer token is never cached across operations, so a call can't fail on a
stale credential.

Idempotency: creates and vaulted charges carry a fresh `PayPal-Request-Id`,
and a capture carries `capture-<order id>`, so a capture retried by the caller
is deduplicated by the processor instead of moving funds twice.
"""

from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional
import uuid

import httpx

from ..config import OrdersGatewayConfig
from ..enums import IntentStatus
from ..enums import PaymentSourceType
from ..enums import ShippingPreference
from ..enums import VaultTokenStatus
from ..exceptions import RemoteProcessorError
from ..models import Capture
from ..models import IntentDraft
from ..models import Link
from ..models import Payer
from ..models import PriceBreakdown
from ..models import PurchaseIntent
from ..models import RemoteIntent
from ..models import SettlementResult
from ..models import ShippingAddress
from ..models import UsageContext
from ..models import VaultToken
from ..tax_policy import format_amount
from . import base

logger = logging.getLogger(__name__)

REFERENCE_ID = "default"
AMOUNT_PATH = f"/purchase_units/@reference_id=='{REFERENCE_ID}'/amount"
SHIPPING_ADDRESS_PATH = (
    f"/purchase_units/@reference_id=='{REFERENCE_ID}'/shipping/address"
)

ORDER_STATUSES = {
    "CREATED": IntentStatus.CREATED,
    "SAVED": IntentStatus.CREATED,
    "PAYER_ACTION_REQUIRED": IntentStatus.CREATED,
    "APPROVED": IntentStatus.APPROVED,
    "COMPLETED": IntentStatus.FINALIZED,
    "VOIDED": IntentStatus.FAILED,
}

FAILED_CAPTURE_STATUSES = frozenset({"DECLINED", "FAILED"})

SETUP_TOKEN_STATUSES = {
    "CREATED": VaultTokenStatus.SETUP_CREATED,
    "PAYER_ACTION_REQUIRED": VaultTokenStatus.SETUP_CREATED,
    "APPROVED": VaultTokenStatus.APPROVED,
    "VAULTED": VaultTokenStatus.TOKENIZED,
    "TOKENIZED": VaultTokenStatus.TOKENIZED,
}

# Wallets that carry their own payment_source entry.
WALLET_SOURCE_KEYS = {
    PaymentSourceType.PAYPAL: "paypal",
    PaymentSourceType.VENMO: "venmo",
}


def translate_order_status(raw: Optional[str]) -> Optional[IntentStatus]:
  status = ORDER_STATUSES.get(raw or "")
  if raw and status is None:
    logger.warning("Unrecognized order status %r", raw)
  return status


def _money(amount: Decimal, currency: str) -> Dict[str, str]:
  return {"currency_code": currency, "value": format_amount(amount)}


def _amount(breakdown: PriceBreakdown, with_breakdown: bool) -> Dict[str, Any]:
  amount: Dict[str, Any] = _money(breakdown.total_amount, breakdown.currency)
  if with_breakdown:
    amount["breakdown"] = {
        "item_total": _money(breakdown.subtotal, breakdown.currency),
        "tax_total": _money(breakdown.tax_amount, breakdown.currency),
    }
  return amount


def _address(address: ShippingAddress) -> Dict[str, str]:
  fields = {
      "address_line_1": address.street_line_1,
      "address_line_2": address.street_line_2,
      "admin_area_2": address.locality,
      "admin_area_1": address.region,
      "postal_code": address.postal_code,
      "country_code": address.country_code,
  }
  return {k: v for k, v in fields.items() if v}


def _links(data: Dict[str, Any]) -> List[Link]:
  return [Link.model_validate(link) for link in data.get("links") or []]


class OrdersGateway(base.ProcessorGateway, base.VaultGateway):
  """Talks to the orders processor with per-operation bearer tokens."""

  name = "orders"
  SELF_ADDRESSED_SOURCES = frozenset({PaymentSourceType.VENMO})

  def __init__(self, config: OrdersGatewayConfig, client: httpx.AsyncClient):
    super().__init__(client)
    self.config = config

  def build_order_payload(self, draft: IntentDraft) -> Dict[str, Any]:
    """Builds the create-order body for `draft`."""
    self_addressed = self.resolves_own_address(draft.payment_source)
    preference = draft.shipping_preference
    if (
        self_addressed
        and preference == ShippingPreference.SET_PROVIDED_ADDRESS
    ):
      preference = ShippingPreference.GET_FROM_FILE

    # With NO_SHIPPING the request is kept minimal: total only.
    detailed = preference != ShippingPreference.NO_SHIPPING
    purchase_unit: Dict[str, Any] = {
        "reference_id": REFERENCE_ID,
        "description": draft.description,
        "amount": _amount(draft.breakdown, with_breakdown=detailed),
    }
    if detailed:
      purchase_unit["items"] = [{
          "name": draft.description,
          "unit_amount": _money(
              draft.breakdown.subtotal, draft.breakdown.currency
          ),
          "quantity": "1",
          "category": draft.product.category,
      }]
      if draft.shipping_address and not self_addressed:
        shipping: Dict[str, Any] = {
            "address": _address(draft.shipping_address)
        }
        if draft.shipping_address.recipient_name:
          shipping["name"] = {
              "full_name": draft.shipping_address.recipient_name
          }
        purchase_unit["shipping"] = shipping

    order: Dict[str, Any] = {
        "intent": "CAPTURE",
        "purchase_units": [purchase_unit],
    }

    source_key = WALLET_SOURCE_KEYS.get(draft.payment_source)
    if source_key:
      source: Dict[str, Any] = {
          "experience_context": {
              "brand_name": draft.brand_name,
              "landing_page": "NO_PREFERENCE",
              "user_action": "PAY_NOW",
              "shipping_preference": preference.value,
              "return_url": draft.return_url,
              "cancel_url": draft.cancel_url,
          }
      }
      if draft.request_vaulting:
        source["attributes"] = {
            "vault": {
                "store_in_vault": "ON_SUCCESS",
                "usage_type": draft.vault_usage_type,
                "customer_type": draft.vault_customer_type,
            }
        }
      order["payment_source"] = {source_key: source}
    return order

  def build_amend_patch(
      self,
      intent: PurchaseIntent,
      breakdown: PriceBreakdown,
      shipping_address: Optional[ShippingAddress],
  ) -> List[Dict[str, Any]]:
    """Builds the JSON Patch replacing the full amount of an order."""
    patch: List[Dict[str, Any]] = [{
        "op": "replace",
        "path": AMOUNT_PATH,
        "value": _amount(breakdown, with_breakdown=True),
    }]
    if (
        shipping_address
        and shipping_address.has_street_level_fields()
        and not self.resolves_own_address(intent.payment_source)
        and intent.shipping_preference != ShippingPreference.NO_SHIPPING
    ):
      patch.append({
          "op": "add",
          "path": SHIPPING_ADDRESS_PATH,
          "value": _address(shipping_address),
      })
    return patch

  async def _access_token(self) -> str:
    """Exchanges the client credentials for a short-lived bearer token."""
    response = await self._send(
        "POST",
        f"{self.config.api_base}/v1/oauth2/token",
        operation="get access token",
        auth=(self.config.client_id, self.config.client_secret),
        data={"grant_type": "client_credentials"},
    )
    data = self._decode(response, "get access token")
    token = data.get("access_token")
    if not token:
      raise RemoteProcessorError(
          "Failed to get access token: no token in response",
          response.status_code,
          data,
      )
    return token

  async def _request(
      self,
      method: str,
      path: str,
      operation: str,
      body: Any = None,
      request_id: Optional[str] = None,
  ) -> httpx.Response:
    token = await self._access_token()
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
    if request_id:
      headers["PayPal-Request-Id"] = request_id
    return await self._send(
        method,
        f"{self.config.api_base}{path}",
        operation=operation,
        headers=headers,
        json=body,
    )

  def _json(
      self, response: httpx.Response, operation: str
  ) -> Dict[str, Any]:
    data = self._decode(response, operation)
    if not data.get("id"):
      raise RemoteProcessorError(
          f"Failed to {operation}: response carries no id",
          response.status_code,
          data,
      )
    return data

  def _remote_intent(self, data: Dict[str, Any]) -> RemoteIntent:
    status = translate_order_status(data.get("status"))
    settlement = None
    if status == IntentStatus.FINALIZED:
      settlement = settlement_from_order(data)
    return RemoteIntent(
        intent_id=data["id"],
        status=status,
        approval_links=_links(data),
        settlement=settlement,
    )

  async def create_intent(self, draft: IntentDraft) -> RemoteIntent:
    response = await self._request(
        "POST",
        "/v2/checkout/orders",
        operation="create order",
        body=self.build_order_payload(draft),
        request_id=draft.reference,
    )
    remote = self._remote_intent(self._json(response, "create order"))
    if remote.status is None:
      remote.status = IntentStatus.CREATED
    return remote

  async def amend_intent(
      self,
      intent: PurchaseIntent,
      breakdown: PriceBreakdown,
      shipping_address: Optional[ShippingAddress],
  ) -> Optional[RemoteIntent]:
    await self._request(
        "PATCH",
        f"/v2/checkout/orders/{intent.intent_id}",
        operation="update order",
        body=self.build_amend_patch(intent, breakdown, shipping_address),
    )
    # 204 No Content on success.
    return None

  async def finalize_intent(
      self, intent: PurchaseIntent, details: Optional[Dict[str, Any]]
  ) -> SettlementResult:
    del details  # Unused.
    response = await self._request(
        "POST",
        f"/v2/checkout/orders/{intent.intent_id}/capture",
        operation="capture order",
        request_id=f"capture-{intent.intent_id}",
    )
    return settlement_from_order(self._json(response, "capture order"))

  async def fetch_intent(self, intent_id: str) -> Optional[RemoteIntent]:
    response = await self._request(
        "GET", f"/v2/checkout/orders/{intent_id}", operation="get order"
    )
    return self._remote_intent(self._json(response, "get order"))

  async def create_setup_token(self, usage: UsageContext) -> VaultToken:
    body = {
        "payment_source": {
            "paypal": {
                "usage_type": usage.usage_type,
                "experience_context": {
                    "return_url": usage.return_url,
                    "cancel_url": usage.cancel_url,
                    "brand_name": usage.brand_name,
                    "shipping_preference": usage.shipping_preference.value,
                },
            }
        }
    }
    response = await self._request(
        "POST",
        "/v3/vault/setup-tokens",
        operation="create setup token",
        body=body,
        request_id=f"setup-{uuid.uuid4()}",
    )
    return self._setup_token(self._json(response, "create setup token"))

  async def fetch_setup_token(self, setup_token_id: str) -> VaultToken:
    response = await self._request(
        "GET",
        f"/v3/vault/setup-tokens/{setup_token_id}",
        operation="get setup token",
    )
    return self._setup_token(self._json(response, "get setup token"))

  async def create_payment_token(self, setup_token_id: str) -> VaultToken:
    body = {
        "payment_source": {
            "token": {"id": setup_token_id, "type": "SETUP_TOKEN"}
        }
    }
    response = await self._request(
        "POST",
        "/v3/vault/payment-tokens",
        operation="create payment token",
        body=body,
        request_id=f"payment-token-{setup_token_id}",
    )
    data = self._json(response, "create payment token")
    customer = data.get("customer") or {}
    return VaultToken(
        setup_token_id=setup_token_id,
        status=VaultTokenStatus.TOKENIZED,
        payment_token_id=data["id"],
        customer_id=customer.get("id"),
    )

  async def charge_vaulted(
      self,
      payment_token_id: str,
      amount: Decimal,
      currency: str,
      description: str,
  ) -> SettlementResult:
    body = {
        "intent": "CAPTURE",
        "purchase_units": [{
            "description": description,
            "amount": _money(amount, currency),
        }],
        "payment_source": {"paypal": {"vault_id": payment_token_id}},
    }
    response = await self._request(
        "POST",
        "/v2/checkout/orders",
        operation="charge vaulted payment",
        body=body,
        request_id=f"vault-charge-{uuid.uuid4()}",
    )
    return settlement_from_order(self._json(response, "charge vaulted payment"))

  @staticmethod
  def _setup_token(data: Dict[str, Any]) -> VaultToken:
    raw_status = data.get("status")
    status = SETUP_TOKEN_STATUSES.get(raw_status or "")
    if status is None:
      logger.warning("Unrecognized setup token status %r", raw_status)
      status = VaultTokenStatus.SETUP_CREATED
    return VaultToken(
        setup_token_id=data["id"],
        status=status,
        approval_links=_links(data),
    )


def settlement_from_order(data: Dict[str, Any]) -> SettlementResult:
  """Translates a captured (or capturing) order into a settlement."""
  captures = []
  failed_capture = False
  for unit in data.get("purchase_units") or []:
    for capture in (unit.get("payments") or {}).get("captures") or []:
      amount = capture.get("amount") or {}
      captures.append(
          Capture(
              id=capture["id"],
              amount=Decimal(amount["value"]) if "value" in amount else None,
              currency=amount.get("currency_code"),
              remote_status=capture.get("status"),
              final_capture=capture.get("final_capture"),
          )
      )
      if capture.get("status") in FAILED_CAPTURE_STATUSES:
        failed_capture = True

  order_status = translate_order_status(data.get("status"))
  if failed_capture:
    status = IntentStatus.FAILED
  elif order_status in (IntentStatus.FINALIZED, IntentStatus.FAILED):
    status = order_status
  else:
    # Not settled yet; the capture may be repeated under the same request id.
    status = IntentStatus.APPROVED

  payer = None
  payer_data = data.get("payer")
  if payer_data:
    name = payer_data.get("name") or {}
    payer = Payer(
        payer_id=payer_data.get("payer_id"),
        email=payer_data.get("email_address"),
        given_name=name.get("given_name"),
        surname=name.get("surname"),
    )

  vault_id = None
  payment_source = data.get("payment_source") or {}
  for key in WALLET_SOURCE_KEYS.values():
    vault = ((payment_source.get(key) or {}).get("attributes") or {}).get(
        "vault"
    ) or {}
    if vault.get("id"):
      vault_id = vault["id"]
      break

  return SettlementResult(
      id=data["id"],
      status=status,
      payer=payer,
      captures=captures,
      vault_id=vault_id,
      raw=data,
  )
