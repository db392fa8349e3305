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

"""Enumerations for the checkout orchestrator.

This module defines the closed sets of states and options used throughout the
orchestrator. Remote processor status strings are translated into these enums
at the gateway boundary, so the lifecycles never branch on raw remote values.
"""

import enum


class IntentStatus(str, enum.Enum):
  CREATED = "CREATED"
  APPROVED = "APPROVED"
  FINALIZED = "FINALIZED"
  EXPIRED = "EXPIRED"
  FAILED = "FAILED"

  @property
  def is_terminal(self) -> bool:
    return self in (
        IntentStatus.FINALIZED,
        IntentStatus.EXPIRED,
        IntentStatus.FAILED,
    )


class VaultTokenStatus(str, enum.Enum):
  SETUP_CREATED = "SETUP_CREATED"
  APPROVED = "APPROVED"
  TOKENIZED = "TOKENIZED"


class ShippingPreference(str, enum.Enum):
  """How the buyer's shipping address is obtained."""

  # The processor collects the address from the buyer's account.
  GET_FROM_FILE = "GET_FROM_FILE"
  # The merchant supplies a street-level address on the intent.
  SET_PROVIDED_ADDRESS = "SET_PROVIDED_ADDRESS"
  NO_SHIPPING = "NO_SHIPPING"


class PaymentSourceType(str, enum.Enum):
  PAYPAL = "paypal"
  VENMO = "venmo"
  CARD = "card"
  GOOGLE_PAY = "paywithgoogle"


class ValidationKind(str, enum.Enum):
  MISSING_ADDRESS = "MISSING_ADDRESS"
  SETUP_NOT_APPROVED = "SETUP_NOT_APPROVED"
  SETUP_TOKEN_CONSUMED = "SETUP_TOKEN_CONSUMED"
  UNKNOWN_PRODUCT = "UNKNOWN_PRODUCT"
  INVALID_AMOUNT = "INVALID_AMOUNT"
  MISSING_PAYMENT_DETAILS = "MISSING_PAYMENT_DETAILS"


class ProcessorEnvironment(str, enum.Enum):
  SANDBOX = "sandbox"
  PRODUCTION = "production"
