# alignment/client/countdown.py

import asyncio
import logging
import math
import random
import time
from typing import Callable, Dict, Optional

from alignment.core.errors import PersistenceFailure
from alignment.schemas.notifications import COUNTDOWN_CONFIGS
from alignment.store.countdowns import countdown_key

logger = logging.getLogger(__name__)


class CountdownTimer:
    """
    Self-rearming countdown with a persisted absolute end time.

    `remaining` is only a display value. Every decision (resume, expiry)
    is taken against the end timestamp in the store, so the host can
    suspend or kill the process at any point without desynchronizing it.
    """

    def __init__(
        self,
        min_seconds: int,
        max_seconds: int,
        store,
        on_fire: Callable[[], object],
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        if min_seconds < 1 or min_seconds > max_seconds:
            raise ValueError(f"invalid countdown bounds [{min_seconds}, {max_seconds}]")
        self.min_seconds = min_seconds
        self.max_seconds = max_seconds
        self.key = countdown_key(min_seconds, max_seconds)
        self.store = store
        self.on_fire = on_fire
        self.clock = clock
        self.rng = rng or random.Random()

        self.remaining = 0
        self.is_active = False
        self.is_paused = False

    # -------------------------
    # persisted end time
    # -------------------------
    def _rearm(self, now: float) -> None:
        duration = self.rng.randint(self.min_seconds, self.max_seconds)
        # store first: if it fails, in-memory state stays where it was
        self.store.set(self.key, now + duration)
        self.remaining = duration
        logger.debug("[countdown] %s rearmed for %ss", self.key, duration)

    def _sync(self, now: float) -> None:
        ends_at = self.store.get(self.key)
        if ends_at is not None and now < ends_at:
            self.remaining = math.floor(ends_at - now)
        else:
            self._rearm(now)

    @property
    def ends_at(self) -> Optional[float]:
        return self.store.get(self.key)

    # -------------------------
    # lifecycle
    # -------------------------
    def initialize(self) -> None:
        """Safe to call on every process start; never redraws a pending countdown."""
        self._sync(self.clock())
        self.is_active = True
        self.is_paused = False

    def start(self) -> None:
        self.initialize()

    def stop(self) -> None:
        self.is_active = False
        self.is_paused = False

    def toggle_pause(self) -> None:
        if not self.is_active:
            return
        if self.is_paused:
            self._sync(self.clock())
            self.is_paused = False
        else:
            self.is_paused = True

    def reset(self) -> None:
        self._rearm(self.clock())

    def tick(self) -> bool:
        """
        Advance one second. Returns True when the countdown fired on this tick.
        """
        if not self.is_active or self.is_paused:
            return False

        now = self.clock()
        ends_at = self.store.get(self.key)
        if ends_at is None:
            self._rearm(now)
            return False
        if now < ends_at:
            self.remaining = math.floor(ends_at - now)
            return False

        # new end time is persisted before delivery starts, so a reload
        # during delivery never sees an expired countdown with nothing after it
        self._rearm(now)
        try:
            self.on_fire()
        except Exception:
            logger.exception("[countdown] delivery failed for %s; timer already rearmed", self.key)
        return True

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        while stop_event is None or not stop_event.is_set():
            await asyncio.sleep(1)
            try:
                self.tick()
            except PersistenceFailure as e:
                logger.error("[countdown] %s", e)


def build_countdowns(store, on_fire: Callable[[], object], **kwargs) -> Dict[str, CountdownTimer]:
    return {
        name: CountdownTimer(lo, hi, store, on_fire, **kwargs)
        for name, (lo, hi) in COUNTDOWN_CONFIGS.items()
    }
