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

"""Checkout time budget enforcement."""

import datetime
from typing import Callable, Optional

from .exceptions import SessionExpiredError

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.timezone.utc)


def elapsed_minutes(
    created_at: datetime.datetime, now: Optional[datetime.datetime] = None
) -> float:
  now = now or utc_now()
  return (now - created_at).total_seconds() / 60


def is_expired(
    created_at: datetime.datetime,
    budget_minutes: int,
    now: Optional[datetime.datetime] = None,
) -> bool:
  """Returns True once strictly more than `budget_minutes` have elapsed."""
  now = now or utc_now()
  return now - created_at > datetime.timedelta(minutes=budget_minutes)


class SessionGuard:
  """Rejects finalize attempts made after the checkout time budget."""

  def __init__(self, budget_minutes: int, clock: Clock = utc_now):
    if budget_minutes <= 0:
      raise ValueError("budget_minutes must be positive")
    self.budget_minutes = budget_minutes
    self.clock = clock

  def now(self) -> datetime.datetime:
    return self.clock()

  def is_expired(self, created_at: datetime.datetime) -> bool:
    return is_expired(created_at, self.budget_minutes, self.clock())

  def check(self, created_at: datetime.datetime) -> None:
    """Raises SessionExpiredError if the budget has elapsed."""
    now = self.clock()
    if is_expired(created_at, self.budget_minutes, now):
      raise SessionExpiredError(
          elapsed_minutes(created_at, now), self.budget_minutes
      )
