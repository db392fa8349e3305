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

"""Vault lifecycle: setup, buyer approval, tokenize, charge.

A setup token is transient and is exchanged at most once for a durable payment
token, and only after the processor reports the buyer approved it. The payment
token can then be charged any number of times without the buyer present.
"""

from decimal import Decimal
import logging
from typing import Dict, Optional

from ..config import CheckoutSettings
from ..enums import IntentStatus
from ..enums import ValidationKind
from ..enums import VaultTokenStatus
from ..exceptions import RemoteProcessorError
from ..exceptions import ValidationError
from ..gateways.base import VaultGateway
from ..models import SettlementResult
from ..models import UsageContext
from ..models import VaultToken
from ..tax_policy import quantize

logger = logging.getLogger(__name__)


class VaultLifecycle:
  """Stores buyer payment methods and charges them later."""

  def __init__(
      self, gateway: VaultGateway, settings: Optional[CheckoutSettings] = None
  ):
    self.gateway = gateway
    self.settings = settings or CheckoutSettings()
    # Setup tokens seen by this process, kept for its lifetime.
    self._tokens: Dict[str, VaultToken] = {}

  async def create_setup(
      self, usage: Optional[UsageContext] = None
  ) -> VaultToken:
    """Creates a setup token for the buyer to approve out-of-band."""
    usage = usage or UsageContext()
    usage = usage.model_copy(
        update={
            "brand_name": usage.brand_name or self.settings.brand_name,
            "return_url": usage.return_url or self.settings.return_url,
            "cancel_url": usage.cancel_url or self.settings.cancel_url,
        }
    )
    token = await self.gateway.create_setup_token(usage)
    self._tokens[token.setup_token_id] = token
    logger.info("Created setup token %s", token.setup_token_id)
    return token

  async def tokenize(self, setup_token_id: str) -> VaultToken:
    """Exchanges an approved setup token for a payment token.

    Raises:
      ValidationError: SETUP_TOKEN_CONSUMED if the setup token was already
        exchanged, SETUP_NOT_APPROVED if the buyer has not approved it yet.
    """
    known = self._tokens.get(setup_token_id)
    if known is not None and known.status == VaultTokenStatus.TOKENIZED:
      raise ValidationError(
          ValidationKind.SETUP_TOKEN_CONSUMED,
          f"Setup token {setup_token_id} was already tokenized",
      )

    remote = await self.gateway.fetch_setup_token(setup_token_id)
    if remote.status == VaultTokenStatus.TOKENIZED:
      raise ValidationError(
          ValidationKind.SETUP_TOKEN_CONSUMED,
          f"Setup token {setup_token_id} was already tokenized",
      )
    if remote.status != VaultTokenStatus.APPROVED:
      raise ValidationError(
          ValidationKind.SETUP_NOT_APPROVED,
          f"Setup token {setup_token_id} has not been approved by the buyer",
      )

    token = await self.gateway.create_payment_token(setup_token_id)
    self._tokens[setup_token_id] = token
    logger.info(
        "Tokenized setup token %s into payment token %s",
        setup_token_id,
        token.payment_token_id,
    )
    return token

  async def charge(
      self,
      payment_token_id: str,
      amount: Decimal,
      currency: str = "USD",
      description: str = "Charge from vaulted payment",
  ) -> SettlementResult:
    """Charges a vaulted payment method.

    Raises:
      ValidationError: INVALID_AMOUNT when the amount rounds to zero cents
        or less.
      RemoteProcessorError: The charge failed or was declined.
    """
    charged = quantize(amount)
    if charged <= 0:
      raise ValidationError(
          ValidationKind.INVALID_AMOUNT,
          f"Charge amount must be positive, got {amount}",
      )
    settlement = await self.gateway.charge_vaulted(
        payment_token_id, charged, currency, description
    )
    if settlement.status == IntentStatus.FAILED:
      logger.error("Vaulted charge %s was declined", settlement.id)
      raise RemoteProcessorError(
          f"Charge against payment token {payment_token_id} was declined",
          None,
          settlement.raw,
      )
    logger.info(
        "Charged %s %s against payment token %s",
        charged,
        currency,
        payment_token_id,
    )
    return settlement
