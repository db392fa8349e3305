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

"""Integration tests for the Checkout Orchestrator Server."""

import asyncio
import json
import os
from typing import Any, Dict, List
from unittest import mock

from absl import flags
from absl.testing import absltest
from absl.testing import flagsaver
from fastapi.testclient import TestClient
import httpx

from checkout_orchestrator import dependencies
from checkout_orchestrator.catalog import Catalog
from checkout_orchestrator.config import CheckoutSettings
from checkout_orchestrator.config import OrdersGatewayConfig
from checkout_orchestrator.config import UnifiedGatewayConfig
from checkout_orchestrator.gateways.unified import UnifiedGateway
from checkout_orchestrator.server import app
from checkout_orchestrator.server import attach_services
from checkout_orchestrator.server import lifespan
from checkout_orchestrator.services.order_lifecycle import OrderLifecycle
from checkout_orchestrator.session_guard import SessionGuard

FLAGS = flags.FLAGS

ORDER = {
    "id": "ORDER-1",
    "status": "PAYER_ACTION_REQUIRED",
    "links": [{"href": "https://approve/ORDER-1", "rel": "payer-action"}],
}

CAPTURED_ORDER = {
    "id": "ORDER-1",
    "status": "COMPLETED",
    "payer": {"payer_id": "PAYER-1", "email_address": "buyer@example.com"},
    "purchase_units": [{
        "payments": {
            "captures": [{
                "id": "CAPTURE-1",
                "status": "COMPLETED",
                "amount": {"currency_code": "USD", "value": "1.09"},
            }],
        },
    }],
}


class FakeProcessors:
  """Serves both processors from canned replies keyed by method and path."""

  def __init__(self):
    self.requests: List[httpx.Request] = []
    self.replies: Dict[Any, Any] = {
        ("POST", "/v1/oauth2/token"): (200, {"access_token": "token"}),
        ("POST", "/v2/checkout/orders"): (201, ORDER),
        ("GET", "/v2/checkout/orders/ORDER-1"): (
            200,
            {"id": "ORDER-1", "status": "APPROVED"},
        ),
        ("PATCH", "/v2/checkout/orders/ORDER-1"): (204, None),
        ("POST", "/v2/checkout/orders/ORDER-1/capture"): (201, CAPTURED_ORDER),
        ("GET", "/v3/vault/setup-tokens/SETUP-1"): (
            200,
            {"id": "SETUP-1", "status": "PAYER_ACTION_REQUIRED"},
        ),
        ("POST", "/v71/payments"): (
            200,
            {
                "resultCode": "RedirectShopper",
                "pspReference": "PSP-1",
                "action": {"type": "sdk", "paymentData": "payment-data-1"},
            },
        ),
        ("POST", "/v71/payments/details"): (
            200,
            {"resultCode": "Authorised", "pspReference": "PSP-1"},
        ),
    }

  def __call__(self, request: httpx.Request) -> httpx.Response:
    self.requests.append(request)
    status, body = self.replies[(request.method, request.url.path)]
    if body is None:
      return httpx.Response(status)
    if isinstance(body, str):
      return httpx.Response(status, text=body)
    return httpx.Response(status, json=body)

  def count(self, method: str, path: str) -> int:
    return sum(
        1
        for r in self.requests
        if r.method == method and r.url.path == path
    )


class ServerTest(absltest.TestCase):
  """Integration tests for the orchestrator HTTP surface."""

  def setUp(self) -> None:
    super().setUp()
    self.processors = FakeProcessors()
    self.http = httpx.AsyncClient(
        transport=httpx.MockTransport(self.processors)
    )
    self.settings = CheckoutSettings()
    attach_services(
        app.state,
        self.http,
        Catalog(),
        self.settings,
        OrdersGatewayConfig(client_id="client", client_secret="secret"),
        None,
    )
    self.client = TestClient(app)

  def tearDown(self) -> None:
    app.dependency_overrides.clear()
    app.state.orders_lifecycle = None
    app.state.unified_lifecycle = None
    app.state.vault_lifecycle = None
    asyncio.run(self.http.aclose())
    super().tearDown()

  def _create(self, **fields: Any) -> Dict[str, Any]:
    payload = {"product_ref": "sku1", "shipping_region": "CA"}
    payload.update(fields)
    response = self.client.post("/orders/intents", json=payload)
    self.assertEqual(response.status_code, 201, f"Response: {response.text}")
    return response.json()

  def test_order_lifecycle(self) -> None:
    """Tests create, amend, fetch and finalize against the orders processor."""
    created = self._create(amount="0.01", total="0.01")
    self.assertEqual(created["intent_id"], "ORDER-1")
    self.assertEqual(created["status"], "CREATED")
    self.assertEqual(created["approval_links"][0]["rel"], "payer-action")
    sent = json.loads(self.processors.requests[1].content)
    self.assertEqual(sent["purchase_units"][0]["amount"]["value"], "1.09")

    response = self.client.post(
        "/orders/intents/ORDER-1/amend", json={"shipping_region": "OR"}
    )
    self.assertEqual(response.status_code, 200, f"Response: {response.text}")
    amended = response.json()
    self.assertEqual(amended["subtotal"], "1.00")
    self.assertEqual(amended["tax_amount"], "0.00")
    self.assertEqual(amended["total_amount"], "1.00")

    response = self.client.get("/orders/intents/ORDER-1")
    self.assertEqual(response.status_code, 200)
    self.assertEqual(response.json()["status"], "APPROVED")
    self.assertEqual(response.json()["total_amount"], "1.00")

    response = self.client.post("/orders/intents/ORDER-1/finalize")
    self.assertEqual(response.status_code, 200, f"Response: {response.text}")
    settlement = response.json()
    self.assertEqual(settlement["status"], "FINALIZED")
    self.assertEqual(settlement["payer"]["email"], "buyer@example.com")
    self.assertNotIn("raw", settlement)

  def test_double_finalize_captures_once(self) -> None:
    self._create()

    first = self.client.post("/orders/intents/ORDER-1/finalize", json={})
    second = self.client.post("/orders/intents/ORDER-1/finalize", json={})

    self.assertEqual(first.status_code, 200)
    self.assertEqual(first.json(), second.json())
    self.assertEqual(
        self.processors.count("POST", "/v2/checkout/orders/ORDER-1/capture"), 1
    )

  def test_unknown_intent(self) -> None:
    response = self.client.get("/orders/intents/NOPE")

    self.assertEqual(response.status_code, 404)
    self.assertEqual(response.json()["code"], "INTENT_NOT_FOUND")

  def test_unknown_product(self) -> None:
    response = self.client.post(
        "/orders/intents", json={"product_ref": "missing"}
    )

    self.assertEqual(response.status_code, 400)
    self.assertEqual(response.json()["code"], "UNKNOWN_PRODUCT")
    self.assertEmpty(self.processors.requests)

  def test_missing_address(self) -> None:
    response = self.client.post(
        "/orders/intents",
        json={
            "product_ref": "sku1",
            "shipping_preference": "SET_PROVIDED_ADDRESS",
        },
    )

    self.assertEqual(response.status_code, 400)
    self.assertEqual(response.json()["code"], "MISSING_ADDRESS")

  def test_remote_rejection_keeps_intent(self) -> None:
    self._create()
    self.processors.replies[("PATCH", "/v2/checkout/orders/ORDER-1")] = (
        422,
        {"name": "UNPROCESSABLE_ENTITY", "message": "Invalid region"},
    )

    response = self.client.post(
        "/orders/intents/ORDER-1/amend", json={"shipping_region": "OR"}
    )

    self.assertEqual(response.status_code, 502)
    body = response.json()
    self.assertEqual(body["code"], "REMOTE_PROCESSOR_ERROR")
    self.assertEqual(body["processor_status"], 422)
    self.assertTrue(body["user_correctable"])
    self.assertEqual(body["processor_error"]["name"], "UNPROCESSABLE_ENTITY")
    intent = app.state.orders_lifecycle.get("ORDER-1")
    self.assertEqual(str(intent.total_amount), "1.09")

  def test_malformed_processor_reply(self) -> None:
    self._create()
    self.processors.replies[
        ("POST", "/v2/checkout/orders/ORDER-1/capture")
    ] = (200, "<html>upstream ok</html>")

    response = self.client.post("/orders/intents/ORDER-1/finalize")

    self.assertEqual(response.status_code, 502)
    body = response.json()
    self.assertEqual(body["code"], "REMOTE_PROCESSOR_ERROR")
    self.assertEqual(body["processor_status"], 200)
    self.assertEqual(
        body["processor_error"], {"message": "<html>upstream ok</html>"}
    )
    intent = app.state.orders_lifecycle.get("ORDER-1")
    self.assertEqual(intent.status.value, "FAILED")

  def test_unconfigured_processor(self) -> None:
    response = self.client.post(
        "/unified/intents", json={"product_ref": "sku1"}
    )

    self.assertEqual(response.status_code, 503)

  def test_unified_lifecycle(self) -> None:
    """Tests the unified processor through a dependency override."""
    lifecycle = OrderLifecycle(
        UnifiedGateway(
            UnifiedGatewayConfig(api_key="key", merchant_account="Merchant"),
            self.http,
        ),
        Catalog(),
        SessionGuard(self.settings.budget_minutes),
        settings=self.settings,
    )
    app.dependency_overrides[dependencies.get_unified_lifecycle] = (
        lambda: lifecycle
    )

    response = self.client.post(
        "/unified/intents",
        json={
            "product_ref": "sku1",
            "shipping_region": "CA",
            "payment_source": "paypal",
            "payment_method_data": {"paymentMethod": {"type": "paypal"}},
        },
    )
    self.assertEqual(response.status_code, 201, f"Response: {response.text}")
    self.assertEqual(response.json()["intent_id"], "PSP-1")
    self.assertEqual(response.json()["client_action"]["type"], "sdk")

    response = self.client.post("/unified/intents/PSP-1/finalize")
    self.assertEqual(response.status_code, 400)
    self.assertEqual(response.json()["code"], "MISSING_PAYMENT_DETAILS")

    response = self.client.post(
        "/unified/intents/PSP-1/finalize",
        json={"details": {"details": {"orderID": "ORDER-1"}}},
    )
    self.assertEqual(response.status_code, 200, f"Response: {response.text}")
    self.assertEqual(response.json()["status"], "FINALIZED")

  def test_vault_tokenize_requires_approval(self) -> None:
    response = self.client.post(
        "/vault/payment-tokens", json={"setup_token_id": "SETUP-1"}
    )

    self.assertEqual(response.status_code, 422)
    self.assertEqual(response.json()["code"], "SETUP_NOT_APPROVED")


class LifespanTest(absltest.TestCase):

  def setUp(self) -> None:
    super().setUp()
    if not FLAGS.is_parsed():
      FLAGS.mark_as_parsed()

  def test_client_is_closed_when_startup_fails(self) -> None:
    clients: List[httpx.AsyncClient] = []

    class RecordingClient(httpx.AsyncClient):

      def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        clients.append(self)

    async def start() -> None:
      async with lifespan(app):
        pass

    missing = os.path.join(self.create_tempdir().full_path, "missing.json")
    with flagsaver.flagsaver(catalog_path=missing):
      with mock.patch.object(httpx, "AsyncClient", RecordingClient):
        with self.assertRaises(OSError):
          asyncio.run(start())

    self.assertLen(clients, 1)
    self.assertTrue(clients[0].is_closed)


if __name__ == "__main__":
  absltest.main()
