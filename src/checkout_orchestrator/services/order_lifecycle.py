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

"""Order lifecycle for managing purchase intents against one processor.

This module provides the `OrderLifecycle` class, which drives a purchase
intent through create, amend, finalize and fetch. It keeps the local mirror of
each intent consistent with the remote processor while holding on to price
authority: subtotals only ever come from the catalog, and tax only ever comes
from the tax policy.

Key rules:
- Client-supplied amounts never reach the computation.
- Amend sends the full recomputed breakdown and only commits locally after the
  processor accepted it.
- Finalize is idempotent once FINALIZED and is refused once the checkout time
  budget has elapsed.
- Terminal local states (FINALIZED, EXPIRED, FAILED) are never overwritten.
"""

import logging
from typing import Any, Dict, Optional
import uuid

from .. import tax_policy
from ..catalog import Catalog
from ..config import CheckoutSettings
from ..enums import IntentStatus
from ..enums import ShippingPreference
from ..enums import ValidationKind
from ..exceptions import IntentNotModifiableError
from ..exceptions import RemoteProcessorError
from ..exceptions import SessionExpiredError
from ..exceptions import ValidationError
from ..gateways.base import ProcessorGateway
from ..models import CreateIntentRequest
from ..models import IntentDraft
from ..models import PurchaseIntent
from ..models import SettlementResult
from ..models import ShippingAddress
from ..session_guard import SessionGuard
from ..session_guard import elapsed_minutes
from .intent_store import InMemoryIntentStore

logger = logging.getLogger(__name__)


class OrderLifecycle:
  """Service for driving purchase intents through one processor."""

  def __init__(
      self,
      gateway: ProcessorGateway,
      catalog: Catalog,
      guard: SessionGuard,
      store: Optional[InMemoryIntentStore] = None,
      settings: Optional[CheckoutSettings] = None,
  ):
    self.gateway = gateway
    self.catalog = catalog
    self.guard = guard
    self.store = store if store is not None else InMemoryIntentStore()
    self.settings = settings or CheckoutSettings(
        budget_minutes=guard.budget_minutes
    )

  async def create(self, request: CreateIntentRequest) -> PurchaseIntent:
    """Opens a remote intent priced from the catalog.

    Args:
      request: The create request. Price fields a client sends along are not
        part of the model and are dropped at parse time.

    Returns:
      The stored intent.

    Raises:
      ValidationError: MISSING_ADDRESS or UNKNOWN_PRODUCT.
      RemoteProcessorError: The processor rejected the intent.
    """
    logger.info(
        "%s: creating intent for product %s",
        self.gateway.name,
        request.product_ref,
    )
    self._check_address(request)
    product = self.catalog.lookup(request.product_ref)

    address = request.shipping_address
    region = request.shipping_region or (address.region if address else None)
    breakdown = tax_policy.price_breakdown(
        product.price, region, product.currency
    )

    draft = IntentDraft(
        reference=str(uuid.uuid4()),
        product=product,
        description=request.description or product.name,
        breakdown=breakdown,
        shipping_address=address,
        shipping_preference=request.shipping_preference,
        payment_source=request.payment_source,
        request_vaulting=request.request_vaulting,
        vault_usage_type=request.vault_usage_type,
        vault_customer_type=request.vault_customer_type,
        brand_name=self.settings.brand_name,
        return_url=request.return_url or self.settings.return_url,
        cancel_url=request.cancel_url or self.settings.cancel_url,
        payment_method_data=request.payment_method_data,
        shopper_reference=request.shopper_reference,
    )
    created_at = self.guard.now()
    remote = await self.gateway.create_intent(draft)

    status = remote.status or IntentStatus.CREATED
    intent = PurchaseIntent(
        intent_id=remote.intent_id,
        status=status,
        product_ref=product.product_ref,
        description=draft.description,
        subtotal=breakdown.subtotal,
        tax_amount=breakdown.tax_amount,
        total_amount=breakdown.total_amount,
        currency=breakdown.currency,
        shipping_region=region,
        shipping_address=address,
        shipping_preference=request.shipping_preference,
        payment_source=request.payment_source,
        created_at=created_at,
        approval_links=remote.approval_links,
        client_action=remote.client_action,
        processor_data=remote.processor_data,
        settlement=(
            remote.settlement if status == IntentStatus.FINALIZED else None
        ),
    )
    self.store.add(intent)
    logger.info(
        "%s: created intent %s (%s, total %s %s)",
        self.gateway.name,
        intent.intent_id,
        intent.status.value,
        tax_policy.format_amount(intent.total_amount),
        intent.currency,
    )
    return intent

  async def amend(
      self,
      intent_id: str,
      new_shipping_region: Optional[str],
      new_shipping_address: Optional[ShippingAddress] = None,
      processor_data: Optional[str] = None,
  ) -> PurchaseIntent:
    """Recomputes tax for a new shipping region and updates the processor.

    The subtotal stays what it was at create time. The local record is only
    replaced after the processor accepted the new amount; if the remote call
    fails the stored intent is left exactly as it was.

    Args:
      intent_id: The intent to amend.
      new_shipping_region: Region code the buyer now ships to. When omitted,
        the region of `new_shipping_address` is used.
      new_shipping_address: Optional street-level address to forward.
      processor_data: Fresh continuation data from the client, for processors
        that hand it out (the unified processor's `paymentData`).

    Returns:
      The updated intent.
    """
    self.store.get(intent_id)
    async with self.store.lock(intent_id):
      intent = self.store.get(intent_id)
      if intent.status.is_terminal:
        raise IntentNotModifiableError(
            f"Intent {intent_id} is {intent.status.value} and cannot be"
            " amended"
        )

      region = new_shipping_region or (
          new_shipping_address.region if new_shipping_address else None
      )
      breakdown = tax_policy.price_breakdown(
          intent.subtotal, region, intent.currency
      )
      if processor_data:
        intent = intent.with_changes(processor_data=processor_data)

      logger.info(
          "%s: amending intent %s for region %s",
          self.gateway.name,
          intent_id,
          region,
      )
      remote = await self.gateway.amend_intent(
          intent, breakdown, new_shipping_address
      )

      changes: Dict[str, Any] = {
          "tax_amount": breakdown.tax_amount,
          "total_amount": breakdown.total_amount,
          "shipping_region": region,
      }
      if new_shipping_address is not None:
        changes["shipping_address"] = new_shipping_address
      if remote is not None:
        if remote.status is not None:
          changes["status"] = remote.status
        if remote.processor_data:
          changes["processor_data"] = remote.processor_data
      updated = intent.with_changes(**changes)
      self.store.replace(updated)
      return updated

  async def finalize(
      self, intent_id: str, details: Optional[Dict[str, Any]] = None
  ) -> SettlementResult:
    """Moves the funds of an intent.

    Args:
      intent_id: The intent to finalize.
      details: Processor-specific details returned to the client by the
        approval step. Required by the unified processor.

    Returns:
      The settlement. Once an intent is FINALIZED, repeated calls return the
      cached settlement without contacting the processor.

    Raises:
      SessionExpiredError: The checkout time budget has elapsed.
      IntentNotModifiableError: The intent already failed.
      RemoteProcessorError: The processor failed or declined the settlement.
    """
    self.store.get(intent_id)
    async with self.store.lock(intent_id):
      intent = self.store.get(intent_id)

      if intent.status == IntentStatus.FINALIZED:
        if intent.settlement is None:
          raise IntentNotModifiableError(
              f"Intent {intent_id} is already finalized"
          )
        logger.info("Intent %s already finalized", intent_id)
        return intent.settlement
      if intent.status == IntentStatus.EXPIRED:
        raise SessionExpiredError(
            elapsed_minutes(intent.created_at, self.guard.now()),
            self.guard.budget_minutes,
        )
      if intent.status == IntentStatus.FAILED:
        raise IntentNotModifiableError(
            f"Intent {intent_id} has failed and cannot be finalized"
        )

      try:
        self.guard.check(intent.created_at)
      except SessionExpiredError:
        logger.warning("Intent %s expired before finalize", intent_id)
        self.store.replace(intent.with_changes(status=IntentStatus.EXPIRED))
        raise

      logger.info("%s: finalizing intent %s", self.gateway.name, intent_id)
      try:
        settlement = await self.gateway.finalize_intent(intent, details)
      except RemoteProcessorError:
        self.store.replace(intent.with_changes(status=IntentStatus.FAILED))
        raise

      if settlement.status == IntentStatus.FINALIZED:
        self.store.replace(
            intent.with_changes(
                status=IntentStatus.FINALIZED, settlement=settlement
            )
        )
        logger.info("Intent %s finalized as %s", intent_id, settlement.id)
        return settlement

      if settlement.status == IntentStatus.FAILED:
        self.store.replace(intent.with_changes(status=IntentStatus.FAILED))
        logger.error("Settlement of intent %s was declined", intent_id)
        raise RemoteProcessorError(
            f"Settlement of intent {intent_id} was declined",
            None,
            settlement.raw,
        )

      # Pending on the processor side; a later finalize may complete it.
      self.store.replace(intent.with_changes(status=settlement.status))
      logger.info(
          "Intent %s settlement pending (%s)",
          intent_id,
          settlement.status.value,
      )
      return settlement

  async def fetch(self, intent_id: str) -> PurchaseIntent:
    """Reconciles the local intent with the processor's view.

    The remote status wins for non-terminal intents; amounts always come from
    the local record. Processors that cannot be read serve the local mirror.
    """
    intent = self.store.get(intent_id)
    if intent.status.is_terminal:
      return intent

    remote = await self.gateway.fetch_intent(intent_id)
    if remote is None or remote.status is None:
      return intent

    async with self.store.lock(intent_id):
      current = self.store.get(intent_id)
      if current.status.is_terminal or current.status == remote.status:
        return current
      changes: Dict[str, Any] = {"status": remote.status}
      if remote.status == IntentStatus.FINALIZED and remote.settlement:
        changes["settlement"] = remote.settlement
      if remote.approval_links:
        changes["approval_links"] = remote.approval_links
      updated = current.with_changes(**changes)
      self.store.replace(updated)
      logger.info(
          "Intent %s moved from %s to %s",
          intent_id,
          current.status.value,
          remote.status.value,
      )
      return updated

  def get(self, intent_id: str) -> PurchaseIntent:
    return self.store.get(intent_id)

  def _check_address(self, request: CreateIntentRequest) -> None:
    if request.shipping_preference != ShippingPreference.SET_PROVIDED_ADDRESS:
      return
    if self.gateway.resolves_own_address(request.payment_source):
      return
    address = request.shipping_address
    if address is None or not address.has_street_level_fields():
      raise ValidationError(
          ValidationKind.MISSING_ADDRESS,
          "A street-level shipping address is required when the shipping"
          " preference is SET_PROVIDED_ADDRESS",
      )
