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

"""Configuration for the checkout orchestrator.

Settings are defined as absl flags and read exactly once at startup into
immutable config objects, which are then passed to the gateways and lifecycles
that need them. Secrets belong in a flag file (`--flagfile=secrets.cfg`),
never in source.
"""

from typing import Optional

from absl import flags
from pydantic import BaseModel
from pydantic import ConfigDict

from .enums import ProcessorEnvironment

FLAGS = flags.FLAGS

ORDERS_API_BASES = {
    ProcessorEnvironment.SANDBOX: "https://api-m.sandbox.paypal.com",
    ProcessorEnvironment.PRODUCTION: "https://api-m.paypal.com",
}

UNIFIED_TEST_API_BASE = "https://checkout-test.adyen.com/v71"
UNIFIED_LIVE_API_BASE = (
    "https://{prefix}-checkout-live.adyenpayments.com/checkout/v71"
)

# Define flags only if they haven't been defined yet (to avoid duplicates
# during tests or re-imports)
try:
  flags.DEFINE_enum(
      "environment",
      ProcessorEnvironment.SANDBOX.value,
      [e.value for e in ProcessorEnvironment],
      "Processor environment to talk to.",
  )
  flags.DEFINE_string("orders_client_id", None, "Orders processor client id")
  flags.DEFINE_string(
      "orders_client_secret", None, "Orders processor client secret"
  )
  flags.DEFINE_string("unified_api_key", None, "Unified processor API key")
  flags.DEFINE_string(
      "unified_merchant_account", None, "Unified processor merchant account"
  )
  flags.DEFINE_string(
      "unified_live_url_prefix",
      None,
      "Live endpoint prefix of the unified processor (production only)",
  )
  flags.DEFINE_integer(
      "checkout_budget_minutes",
      30,
      "Minutes a purchase intent may stay open before finalize is refused",
  )
  flags.DEFINE_string("brand_name", "Your Store", "Brand shown to the buyer")
  flags.DEFINE_string(
      "return_url", "http://localhost:5173/", "Return URL after approval"
  )
  flags.DEFINE_string(
      "cancel_url", "http://localhost:5173/", "Return URL after cancel"
  )
  flags.DEFINE_string(
      "catalog_path", None, "Path to a JSON product catalog (optional)"
  )
  flags.DEFINE_float(
      "request_timeout_seconds", 30.0, "Timeout for processor HTTP calls"
  )
  flags.DEFINE_string("host", "0.0.0.0", "Host to bind the server to")
  flags.DEFINE_integer("port", 8080, "Port to run the server on")
except flags.DuplicateFlagError:
  pass


class OrdersGatewayConfig(BaseModel):
  model_config = ConfigDict(frozen=True)

  client_id: str
  client_secret: str
  environment: ProcessorEnvironment = ProcessorEnvironment.SANDBOX

  @property
  def api_base(self) -> str:
    return ORDERS_API_BASES[self.environment]


class UnifiedGatewayConfig(BaseModel):
  model_config = ConfigDict(frozen=True)

  api_key: str
  merchant_account: str
  environment: ProcessorEnvironment = ProcessorEnvironment.SANDBOX
  live_url_prefix: Optional[str] = None

  @property
  def api_base(self) -> str:
    if self.environment == ProcessorEnvironment.SANDBOX:
      return UNIFIED_TEST_API_BASE
    if not self.live_url_prefix:
      raise ValueError("live_url_prefix is required in production")
    return UNIFIED_LIVE_API_BASE.format(prefix=self.live_url_prefix)


class CheckoutSettings(BaseModel):
  model_config = ConfigDict(frozen=True)

  budget_minutes: int = 30
  brand_name: str = "Your Store"
  return_url: str = "http://localhost:5173/"
  cancel_url: str = "http://localhost:5173/"


def orders_config_from_flags() -> Optional[OrdersGatewayConfig]:
  """Returns the orders processor config, or None if it is not configured."""
  if not FLAGS.orders_client_id or not FLAGS.orders_client_secret:
    return None
  return OrdersGatewayConfig(
      client_id=FLAGS.orders_client_id,
      client_secret=FLAGS.orders_client_secret,
      environment=ProcessorEnvironment(FLAGS.environment),
  )


def unified_config_from_flags() -> Optional[UnifiedGatewayConfig]:
  """Returns the unified processor config, or None if it is not configured."""
  if not FLAGS.unified_api_key or not FLAGS.unified_merchant_account:
    return None
  return UnifiedGatewayConfig(
      api_key=FLAGS.unified_api_key,
      merchant_account=FLAGS.unified_merchant_account,
      environment=ProcessorEnvironment(FLAGS.environment),
      live_url_prefix=FLAGS.unified_live_url_prefix,
  )


def checkout_settings_from_flags() -> CheckoutSettings:
  return CheckoutSettings(
      budget_minutes=FLAGS.checkout_budget_minutes,
      brand_name=FLAGS.brand_name,
      return_url=FLAGS.return_url,
      cancel_url=FLAGS.cancel_url,
  )
