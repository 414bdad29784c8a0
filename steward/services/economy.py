"""Currency balances and the daily reward."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import discord

from .store import ECONOMY, CounterStore, EconomyRecord

logger = logging.getLogger(__name__)

DEFAULT_DAILY_REWARD = 100


@dataclass(frozen=True)
class DailyClaim:
    granted: bool
    balance: int
    amount: int = 0
    retry_after: Optional[timedelta] = None


class Economy:
    """Balance lookups and daily claims on top of the ``economy`` namespace."""

    def __init__(
        self,
        store: CounterStore,
        daily_reward: int = DEFAULT_DAILY_REWARD,
        daily_cooldown: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = discord.utils.utcnow,
    ):
        self._store = store
        self.daily_reward = daily_reward
        self.daily_cooldown = daily_cooldown
        self._clock = clock

    def balance(self, user_id: int | str) -> int:
        return self._store.get(ECONOMY, user_id).balance

    async def claim_daily(self, user_id: int | str) -> DailyClaim:
        async with self._store.lock(ECONOMY, user_id):
            record = self._store.get(ECONOMY, user_id)
            now = self._clock()
            if self.daily_cooldown and record.last_daily is not None:
                next_claim = record.last_daily + self.daily_cooldown
                if now < next_claim:
                    return DailyClaim(granted=False, balance=record.balance, retry_after=next_claim - now)

            updated = EconomyRecord(balance=record.balance + self.daily_reward, last_daily=now)
            self._store.set(ECONOMY, user_id, updated)

        logger.info("User %s claimed %d daily coins", user_id, self.daily_reward)
        return DailyClaim(granted=True, balance=updated.balance, amount=self.daily_reward)
