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

"""Purchase intent routes, one router per processor."""

from typing import Callable, Optional

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends
from fastapi import Path

from ..models import AmendIntentRequest
from ..models import AmendIntentResponse
from ..models import CreateIntentRequest
from ..models import CreateIntentResponse
from ..models import FinalizeIntentRequest
from ..models import PurchaseIntent
from ..models import SettlementResult
from ..services.order_lifecycle import OrderLifecycle


def make_router(
    processor: str, get_lifecycle: Callable[..., OrderLifecycle]
) -> APIRouter:
  """Builds the intent routes for `processor` under `/{processor}`."""
  router = APIRouter(prefix=f"/{processor}", tags=[processor])

  @router.post(
      "/intents",
      response_model=CreateIntentResponse,
      status_code=201,
      operation_id=f"{processor}_create_intent",
  )
  async def create_intent(
      request: CreateIntentRequest = Body(...),
      lifecycle: OrderLifecycle = Depends(get_lifecycle),
  ) -> CreateIntentResponse:
    """Create a purchase intent priced from the catalog."""
    intent = await lifecycle.create(request)
    return CreateIntentResponse(
        intent_id=intent.intent_id,
        status=intent.status,
        approval_links=intent.approval_links,
        client_action=intent.client_action,
    )

  @router.post(
      "/intents/{id}/amend",
      response_model=AmendIntentResponse,
      operation_id=f"{processor}_amend_intent",
  )
  async def amend_intent(
      intent_id: str = Path(..., alias="id"),
      request: AmendIntentRequest = Body(...),
      lifecycle: OrderLifecycle = Depends(get_lifecycle),
  ) -> AmendIntentResponse:
    """Recompute tax for a new shipping region."""
    intent = await lifecycle.amend(
        intent_id,
        request.shipping_region,
        request.shipping_address,
        request.processor_data,
    )
    return AmendIntentResponse(
        intent_id=intent.intent_id,
        subtotal=intent.subtotal,
        tax_amount=intent.tax_amount,
        total_amount=intent.total_amount,
        currency=intent.currency,
        shipping_region=intent.shipping_region,
    )

  @router.post(
      "/intents/{id}/finalize",
      response_model=SettlementResult,
      operation_id=f"{processor}_finalize_intent",
  )
  async def finalize_intent(
      intent_id: str = Path(..., alias="id"),
      request: Optional[FinalizeIntentRequest] = Body(None),
      lifecycle: OrderLifecycle = Depends(get_lifecycle),
  ) -> SettlementResult:
    """Capture the funds of an approved intent."""
    details = request.details if request else None
    return await lifecycle.finalize(intent_id, details)

  @router.get(
      "/intents/{id}",
      response_model=PurchaseIntent,
      operation_id=f"{processor}_get_intent",
  )
  async def get_intent(
      intent_id: str = Path(..., alias="id"),
      lifecycle: OrderLifecycle = Depends(get_lifecycle),
  ) -> PurchaseIntent:
    """Get an intent, reconciled with the processor where it can be read."""
    return await lifecycle.fetch(intent_id)

  return router
