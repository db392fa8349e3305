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

"""Processor gateway interfaces.

A gateway turns one lifecycle verb into one authenticated remote call and
translates the processor's reply into orchestrator models. Gateways never
retry: a failed exchange surfaces as `RemoteProcessorError` and the caller
decides what to do next.
"""

import abc
from decimal import Decimal
import logging
from typing import Any, Dict, FrozenSet, Optional

import httpx

from ..enums import PaymentSourceType
from ..exceptions import RemoteProcessorError
from ..models import IntentDraft
from ..models import PriceBreakdown
from ..models import PurchaseIntent
from ..models import RemoteIntent
from ..models import SettlementResult
from ..models import ShippingAddress
from ..models import UsageContext
from ..models import VaultToken

logger = logging.getLogger(__name__)


def error_payload(response: httpx.Response) -> Dict[str, Any]:
  """Extracts the processor's error body, whatever its shape."""
  try:
    payload = response.json()
  except ValueError:
    return {"message": response.text}
  if isinstance(payload, dict):
    return payload
  return {"errors": payload}


class ProcessorGateway(abc.ABC):
  """One payment processor, seen through the intent lifecycle verbs."""

  name = "processor"

  # Payment sources that resolve the buyer's address on the processor side.
  # A locally supplied shipping object is never sent along with them.
  SELF_ADDRESSED_SOURCES: FrozenSet[PaymentSourceType] = frozenset()

  def __init__(self, client: httpx.AsyncClient):
    self.client = client

  def resolves_own_address(self, source: PaymentSourceType) -> bool:
    return source in self.SELF_ADDRESSED_SOURCES

  @abc.abstractmethod
  async def create_intent(self, draft: IntentDraft) -> RemoteIntent:
    """Opens a remote intent for `draft`."""

  @abc.abstractmethod
  async def amend_intent(
      self,
      intent: PurchaseIntent,
      breakdown: PriceBreakdown,
      shipping_address: Optional[ShippingAddress],
  ) -> Optional[RemoteIntent]:
    """Replaces the remote amount with the full `breakdown`.

    Returns:
      The processor's updated view of the intent, or None when the processor
      acknowledges the change without a body.
    """

  @abc.abstractmethod
  async def finalize_intent(
      self, intent: PurchaseIntent, details: Optional[Dict[str, Any]]
  ) -> SettlementResult:
    """Moves the funds of an approved intent."""

  @abc.abstractmethod
  async def fetch_intent(self, intent_id: str) -> Optional[RemoteIntent]:
    """Reads the remote intent, or returns None if the processor can't."""

  async def _send(
      self, method: str, url: str, operation: str, **kwargs: Any
  ) -> httpx.Response:
    """Performs one HTTP exchange and raises on any non-2xx reply."""
    try:
      response = await self.client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
      logger.error("%s: failed to %s: %s", self.name, operation, e)
      raise RemoteProcessorError(
          f"Failed to {operation}: {e}", None, {"message": str(e)}
      ) from e

    if not response.is_success:
      payload = error_payload(response)
      logger.error(
          "%s: failed to %s: %d %s",
          self.name,
          operation,
          response.status_code,
          payload,
      )
      raise RemoteProcessorError(
          f"Failed to {operation}: {response.status_code}"
          f" {payload.get('message') or response.reason_phrase}",
          response.status_code,
          payload,
      )
    return response

  def _decode(
      self, response: httpx.Response, operation: str
  ) -> Dict[str, Any]:
    """Decodes a successful reply, which must be a JSON object."""
    try:
      data = response.json()
    except ValueError as e:
      logger.error(
          "%s: failed to %s: reply is not JSON", self.name, operation
      )
      raise RemoteProcessorError(
          f"Failed to {operation}: reply is not JSON",
          response.status_code,
          {"message": response.text},
      ) from e
    if not isinstance(data, dict):
      logger.error(
          "%s: failed to %s: reply is not an object", self.name, operation
      )
      raise RemoteProcessorError(
          f"Failed to {operation}: reply is not an object",
          response.status_code,
          {"message": response.text},
      )
    return data


class VaultGateway(abc.ABC):
  """A processor that can store payment methods for later charges."""

  @abc.abstractmethod
  async def create_setup_token(self, usage: UsageContext) -> VaultToken:
    """Starts vaulting; the buyer approves the returned token out-of-band."""

  @abc.abstractmethod
  async def fetch_setup_token(self, setup_token_id: str) -> VaultToken:
    """Reads the remote state of a setup token."""

  @abc.abstractmethod
  async def create_payment_token(self, setup_token_id: str) -> VaultToken:
    """Exchanges an approved setup token for a durable payment token."""

  @abc.abstractmethod
  async def charge_vaulted(
      self,
      payment_token_id: str,
      amount: Decimal,
      currency: str,
      description: str,
  ) -> SettlementResult:
    """Captures `amount` against a vaulted payment method."""
