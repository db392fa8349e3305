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

"""FastAPI dependencies for the checkout orchestrator.

The lifecycles are built once at startup and kept on `app.state`; these
providers hand them to the endpoints. A processor without credentials has no
lifecycle, and its endpoints answer 503.
"""

from typing import Any

from fastapi import HTTPException
from fastapi import Request

from .services.order_lifecycle import OrderLifecycle
from .services.vault_lifecycle import VaultLifecycle


def _from_state(request: Request, attribute: str, processor: str) -> Any:
  service = getattr(request.app.state, attribute, None)
  if service is None:
    raise HTTPException(
        status_code=503,
        detail=f"The {processor} processor is not configured",
    )
  return service


def get_orders_lifecycle(request: Request) -> OrderLifecycle:
  """Dependency provider for the orders processor lifecycle."""
  return _from_state(request, "orders_lifecycle", "orders")


def get_unified_lifecycle(request: Request) -> OrderLifecycle:
  """Dependency provider for the unified processor lifecycle."""
  return _from_state(request, "unified_lifecycle", "unified")


def get_vault_lifecycle(request: Request) -> VaultLifecycle:
  """Dependency provider for the vault lifecycle."""
  return _from_state(request, "vault_lifecycle", "orders")
