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

"""Custom exceptions for the checkout orchestrator."""

from typing import Any, Dict, Optional

from .enums import ValidationKind


class OrchestratorError(Exception):
  """Base class for all orchestrator exceptions."""

  def __init__(
      self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500
  ):
    self.message = message
    self.code = code
    self.status_code = status_code
    super().__init__(self.message)

  def context(self) -> Dict[str, Any]:
    """Structured details surfaced to the caller next to the message."""
    return {}


class ValidationError(OrchestratorError):
  """Raised when a local precondition fails before any remote call."""

  def __init__(self, kind: ValidationKind, message: str):
    status_code = 422 if kind == ValidationKind.SETUP_NOT_APPROVED else 400
    super().__init__(message, code=kind.value, status_code=status_code)
    self.kind = kind


class RemoteProcessorError(OrchestratorError):
  """Raised when a payment processor rejects or fails a call.

  `status_code` on the exception is the HTTP status reported to our own
  caller; the processor's status is kept in `processor_status`, which is None
  when there is no HTTP reply to blame: the exchange failed at the transport
  layer, or a settlement came back declined.
  """

  def __init__(
      self,
      message: str,
      processor_status: Optional[int],
      raw_payload: Optional[Dict[str, Any]] = None,
  ):
    super().__init__(message, code="REMOTE_PROCESSOR_ERROR", status_code=502)
    self.processor_status = processor_status
    self.raw_payload = raw_payload or {}

  @property
  def is_user_correctable(self) -> bool:
    """True for request-level rejections such as an invalid address."""
    if self.processor_status is None:
      return False
    return 400 <= self.processor_status < 500 and self.processor_status not in (
        401,
        403,
    )

  def context(self) -> Dict[str, Any]:
    return {
        "processor_status": self.processor_status,
        "processor_error": self.raw_payload,
        "user_correctable": self.is_user_correctable,
    }


class SessionExpiredError(OrchestratorError):
  """Raised when finalize is attempted after the checkout time budget."""

  def __init__(self, elapsed_minutes: float, budget_minutes: int):
    super().__init__(
        f"Checkout session expired after {elapsed_minutes:.1f} minutes"
        f" (budget {budget_minutes} minutes)",
        code="SESSION_EXPIRED",
        status_code=410,
    )
    self.elapsed_minutes = elapsed_minutes
    self.budget_minutes = budget_minutes

  def context(self) -> Dict[str, Any]:
    return {
        "elapsed_minutes": round(self.elapsed_minutes, 3),
        "budget_minutes": self.budget_minutes,
    }


class IntentNotFoundError(OrchestratorError):
  """Raised when a requested intent is not known to this orchestrator."""

  def __init__(self, message: str):
    super().__init__(message, code="INTENT_NOT_FOUND", status_code=404)


class IntentNotModifiableError(OrchestratorError):
  """Raised when amending or finalizing an intent in a terminal state."""

  def __init__(self, message: str):
    super().__init__(message, code="INTENT_NOT_MODIFIABLE", status_code=409)
