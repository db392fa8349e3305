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

"""In-memory store of purchase intents."""

import asyncio
from typing import Dict

from ..exceptions import IntentNotFoundError
from ..models import PurchaseIntent


class InMemoryIntentStore:
  """Keeps the local mirror of each intent, keyed by processor intent id.

  Records are replaced whole, never mutated in place, so a reader always sees
  either the previous or the next committed version of an intent. Records live
  for the process lifetime. Per-intent locks are released once the intent
  reaches a terminal state.
  """

  def __init__(self):
    self._intents: Dict[str, PurchaseIntent] = {}
    self._locks: Dict[str, asyncio.Lock] = {}

  def add(self, intent: PurchaseIntent) -> None:
    self._intents[intent.intent_id] = intent

  def get(self, intent_id: str) -> PurchaseIntent:
    intent = self._intents.get(intent_id)
    if intent is None:
      raise IntentNotFoundError(f"Intent {intent_id} not found")
    return intent

  def replace(self, intent: PurchaseIntent) -> None:
    if intent.intent_id not in self._intents:
      raise IntentNotFoundError(f"Intent {intent.intent_id} not found")
    self._intents[intent.intent_id] = intent
    if intent.status.is_terminal:
      self._locks.pop(intent.intent_id, None)

  def lock(self, intent_id: str) -> asyncio.Lock:
    """Returns the lock serializing mutations of one intent.

    Terminal intents are never mutated and get a fresh, untracked lock.
    """
    intent = self._intents.get(intent_id)
    if intent is not None and intent.status.is_terminal:
      return asyncio.Lock()
    return self._locks.setdefault(intent_id, asyncio.Lock())

  def tracked_locks(self) -> int:
    return len(self._locks)

  def __len__(self) -> int:
    return len(self._intents)
