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

"""Checkout Orchestrator Server (Python/FastAPI)."""

import contextlib
import logging
from typing import Optional, Sequence

from absl import app as absl_app
from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
import httpx
import uvicorn

from . import config
from . import dependencies
from .catalog import Catalog
from .catalog import load_catalog
from .config import CheckoutSettings
from .config import OrdersGatewayConfig
from .config import UnifiedGatewayConfig
from .exceptions import OrchestratorError
from .gateways.orders import OrdersGateway
from .gateways.unified import UnifiedGateway
from .routes import intents
from .routes.vault import router as vault_router
from .services.order_lifecycle import OrderLifecycle
from .services.vault_lifecycle import VaultLifecycle
from .session_guard import SessionGuard

# --- App Setup ---

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def attach_services(
    state,
    client: httpx.AsyncClient,
    catalog: Catalog,
    settings: CheckoutSettings,
    orders_config: Optional[OrdersGatewayConfig],
    unified_config: Optional[UnifiedGatewayConfig],
) -> None:
  """Builds the gateways and lifecycles and stores them on `state`."""
  guard = SessionGuard(settings.budget_minutes)
  state.orders_lifecycle = None
  state.unified_lifecycle = None
  state.vault_lifecycle = None

  if orders_config:
    orders = OrdersGateway(orders_config, client)
    state.orders_lifecycle = OrderLifecycle(
        orders, catalog, guard, settings=settings
    )
    state.vault_lifecycle = VaultLifecycle(orders, settings)
    logger.info(
        "Orders processor configured (%s)", orders_config.environment.value
    )
  else:
    logger.warning("Orders processor credentials missing; routes disabled")

  if unified_config:
    unified = UnifiedGateway(unified_config, client)
    state.unified_lifecycle = OrderLifecycle(
        unified, catalog, guard, settings=settings
    )
    logger.info(
        "Unified processor configured (%s)", unified_config.environment.value
    )
  else:
    logger.warning("Unified processor credentials missing; routes disabled")


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
  """Reads configuration once and owns the shared HTTP client."""
  async with httpx.AsyncClient(
      timeout=config.FLAGS.request_timeout_seconds
  ) as client:
    attach_services(
        app.state,
        client,
        load_catalog(config.FLAGS.catalog_path),
        config.checkout_settings_from_flags(),
        config.orders_config_from_flags(),
        config.unified_config_from_flags(),
    )
    yield


app = FastAPI(
    title="Checkout Orchestrator",
    version="0.1.0",
    description="Server-side checkout orchestration for payment processors",
    lifespan=lifespan,
)


@app.exception_handler(OrchestratorError)
async def orchestrator_exception_handler(
    request: Request, exc: OrchestratorError
):
  """Converts orchestrator exceptions to JSON responses."""
  del request  # Unused.
  return JSONResponse(
      status_code=exc.status_code,
      content={"detail": exc.message, "code": exc.code, **exc.context()},
  )


app.include_router(
    intents.make_router("orders", dependencies.get_orders_lifecycle)
)
app.include_router(
    intents.make_router("unified", dependencies.get_unified_lifecycle)
)
app.include_router(vault_router)


def main(argv: Sequence[str]) -> None:
  """Main entry point for the Checkout Orchestrator Server."""
  del argv  # Unused.

  if (
      config.orders_config_from_flags() is None
      and config.unified_config_from_flags() is None
  ):
    logger.warning(
        "No processor credentials provided; every intent route will answer"
        " 503. Pass them with --flagfile."
    )

  uvicorn.run(app, host=config.FLAGS.host, port=config.FLAGS.port)


def run() -> None:
  absl_app.run(main)


if __name__ == "__main__":
  run()
