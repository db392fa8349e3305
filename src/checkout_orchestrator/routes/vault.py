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

"""Vault routes: setup tokens, payment tokens and vaulted charges."""

from typing import Optional

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends

from .. import dependencies
from ..models import ChargeRequest
from ..models import SettlementResult
from ..models import TokenizeRequest
from ..models import TokenizeResponse
from ..models import UsageContext
from ..models import VaultToken
from ..services.vault_lifecycle import VaultLifecycle

router = APIRouter(prefix="/vault", tags=["vault"])


@router.post(
    "/setup-tokens",
    response_model=VaultToken,
    status_code=201,
    operation_id="create_setup_token",
)
async def create_setup_token(
    usage: Optional[UsageContext] = Body(None),
    vault: VaultLifecycle = Depends(dependencies.get_vault_lifecycle),
) -> VaultToken:
  """Create a setup token for the buyer to approve."""
  return await vault.create_setup(usage)


@router.post(
    "/payment-tokens",
    response_model=TokenizeResponse,
    status_code=201,
    operation_id="create_payment_token",
)
async def create_payment_token(
    request: TokenizeRequest = Body(...),
    vault: VaultLifecycle = Depends(dependencies.get_vault_lifecycle),
) -> TokenizeResponse:
  """Exchange an approved setup token for a payment token."""
  token = await vault.tokenize(request.setup_token_id)
  return TokenizeResponse(
      payment_token_id=token.payment_token_id,
      customer_id=token.customer_id,
      status=token.status,
  )


@router.post(
    "/charges",
    response_model=SettlementResult,
    operation_id="charge_payment_token",
)
async def charge_payment_token(
    request: ChargeRequest = Body(...),
    vault: VaultLifecycle = Depends(dependencies.get_vault_lifecycle),
) -> SettlementResult:
  """Charge a vaulted payment method."""
  return await vault.charge(
      request.payment_token_id,
      request.amount,
      request.currency,
      request.description,
  )
