"""
Notification channel between the farm core and whatever presents it.

The ledger, clock and transactions emit named events with a small payload;
a UI, CLI or recorder subscribes to the names it cares about. Delivery is
synchronous and in subscription order. A failing handler is logged and
skipped so it cannot break the simulation that emitted the event.
"""
import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

MONEY_CHANGED = "money-changed"
DAY_ADVANCED = "day-advanced"
CROP_PLANTED = "crop-planted"
CROP_MATURED = "crop-matured"
CROP_HARVESTED = "crop-harvested"
ANIMAL_PURCHASED = "animal-purchased"
ANIMAL_PLACED = "animal-placed"
ANIMAL_MATURED = "animal-matured"
ANIMAL_BRED = "animal-bred"
ITEM_PURCHASED = "item-purchased"
ITEM_SOLD = "item-sold"
MILESTONE_REACHED = "milestone-reached"
GAME_STARTED = "game-started"
GAME_WON = "game-won"
GAME_LOST = "game-lost"
TIMER_UPDATE = "timer-update"

ALL_EVENTS = (
    MONEY_CHANGED, DAY_ADVANCED, CROP_PLANTED, CROP_MATURED, CROP_HARVESTED,
    ANIMAL_PURCHASED, ANIMAL_PLACED, ANIMAL_MATURED, ANIMAL_BRED,
    ITEM_PURCHASED, ITEM_SOLD, MILESTONE_REACHED, GAME_STARTED, GAME_WON,
    GAME_LOST, TIMER_UPDATE,
)


@dataclass
class GameEvent:
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    time: float = 0


class EventBus:
    def __init__(self, clock=None, history_size=200):
        self._clock = clock
        self._subs: Dict[str, List[Callable]] = defaultdict(list)
        self._wildcard: List[Callable] = []
        self._stats: Dict[str, int] = defaultdict(int)
        self.history = deque(maxlen=history_size)

    def set_clock(self, clock):
        self._clock = clock

    def subscribe(self, name, handler):
        self._subs[name].append(handler)

    def subscribe_all(self, handler):
        self._wildcard.append(handler)

    def unsubscribe(self, name, handler):
        handlers = self._wildcard if name is None else self._subs.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, name, /, **payload):
        # positional-only so a payload may carry its own "name" key
        event = GameEvent(name, payload, self._clock() if self._clock else 0)
        self._stats[name] += 1
        # timer updates fire every tick and would flush everything else out
        if name != TIMER_UPDATE:
            self.history.append(event)
        for handler in list(self._subs.get(name, [])) + list(self._wildcard):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in %s handler %r", name, handler)
        return event

    def stats(self):
        return dict(self._stats)

    def count(self, name):
        return self._stats.get(name, 0)

    def __repr__(self):
        return f"EventBus(subs={sum(len(h) for h in self._subs.values())}, emitted={sum(self._stats.values())})"
