"""
One game of Farm Rescue: the bus, clock, ledger and commands wired together.

A new game is a new GameSession. Nothing in the package holds global game
state, so several sessions can run side by side (the analysis runs do).
"""
import json
import logging
import os
import random

import simpy

from . import events
from .config import SCENARIO_STANDARD, SCENARIOS
from .events import EventBus
from .ledger import FarmLedger
from .sim_model import FarmSimulation
from .transactions import FarmTransactions

logger = logging.getLogger(__name__)

SAVE_VERSION = 1

# simpy time is in ms; the realtime environment wants seconds per unit
REALTIME_FACTOR = 0.001


def resolve_scenario(scenario):
    if scenario is None:
        return SCENARIO_STANDARD
    if isinstance(scenario, str):
        try:
            return SCENARIOS[scenario.lower()]
        except KeyError:
            raise ValueError(f"Unknown scenario {scenario!r}, expected one of {sorted(SCENARIOS)}")
    return scenario


def scenario_overrides(config):
    """Keys of `config` that differ from the named scenario it was built from."""
    base = SCENARIOS.get(str(config.get("NAME", "")).lower(), {})
    return {key: value for key, value in config.items()
            if key not in base or base[key] != value}


def _scenario_from_save(data):
    name = data.get("scenario")
    base = SCENARIOS.get(str(name).lower(), SCENARIO_STANDARD) if name else SCENARIO_STANDARD
    overrides = data.get("overrides")
    return dict(base, **overrides) if overrides else base


def _rng_state(rng):
    version, internal, gauss = rng.getstate()
    return [version, list(internal), gauss]


def _set_rng_state(rng, state):
    version, internal, gauss = state
    rng.setstate((version, tuple(internal), gauss))


class GameSession:
    def __init__(self, scenario=None, seed=None, realtime=False, snapshot=None, day_elapsed=0):
        self.config = resolve_scenario(scenario)
        self.seed = seed
        self.rng = random.Random(seed)
        self.bus = EventBus()

        initial_time = snapshot.get("clock_time", 0) if snapshot else 0
        if realtime:
            self.env = simpy.RealtimeEnvironment(initial_time=initial_time,
                                                 factor=REALTIME_FACTOR, strict=False)
        else:
            self.env = simpy.Environment(initial_time=initial_time)
        self.bus.set_clock(lambda: self.env.now)

        clock = lambda: self.env.now
        if snapshot:
            self.ledger = FarmLedger.restore(snapshot, self.config, self.bus, clock, self.rng)
        else:
            self.ledger = FarmLedger(self.config, self.bus, clock, self.rng)
        self.simulation = FarmSimulation(self.env, self.ledger, self.bus, self.config, self.rng)
        self.transactions = FarmTransactions(self.ledger, self.bus)
        # part of the current day already played in a saved game
        self._day_elapsed = day_elapsed

        logger.info("Session started: %s scenario, seed=%s, day %s",
                    self.config["NAME"], seed, self.ledger.day)
        self.bus.emit(events.GAME_STARTED, scenario=self.config["NAME"],
                      money=self.ledger.money, goal=self.ledger.goal,
                      total_days=self.ledger.total_days, restored=bool(snapshot))

    @classmethod
    def new(cls, scenario=None, seed=None, start=True):
        session = cls(scenario, seed)
        if start:
            session.start()
        return session

    def __repr__(self):
        return (f"GameSession({self.config['NAME']}, day={self.ledger.day}, "
                f"money={self.ledger.money}, status={self.ledger.status})")

    # --- clock ---

    def now(self):
        return self.env.now

    def start(self):
        started = self.simulation.start(self._day_elapsed)
        if started:
            self._day_elapsed = 0
        return started

    def stop(self):
        return self.simulation.stop()

    def pause(self):
        return self.simulation.pause()

    def resume(self):
        return self.simulation.resume()

    def advance(self, duration):
        return self.simulation.advance(duration)

    def run_until_game_over(self, limit=None):
        return self.simulation.run_until_game_over(limit)

    @property
    def is_over(self):
        return self.ledger.is_game_over()

    def info(self):
        info = self.ledger.game_info()
        info["clock"] = self.simulation.status()
        info["farm"] = self.transactions.farm_status()
        return info

    # --- persistence ---

    def day_elapsed(self):
        started = self.simulation.day_started_at
        if started is None:
            return self._day_elapsed
        return self.env.now - started

    def to_dict(self):
        return {
            "version": SAVE_VERSION,
            "scenario": self.config["NAME"],
            "seed": self.seed,
            "overrides": scenario_overrides(self.config),
            "rng_state": _rng_state(self.rng),
            "day_elapsed": self.day_elapsed(),
            "ledger": self.ledger.snapshot(),
        }

    def save(self, path):
        directory = os.path.dirname(path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2)
        logger.info("Session saved to %s", path)
        return path

    @classmethod
    def from_dict(cls, data, scenario=None, realtime=False):
        if data.get("version") != SAVE_VERSION:
            raise ValueError(f"Unsupported save version {data.get('version')!r}")
        if scenario is None:
            scenario = _scenario_from_save(data)
        session = cls(scenario, data.get("seed"), realtime, snapshot=data["ledger"],
                      day_elapsed=data.get("day_elapsed", 0))
        if data.get("rng_state"):
            _set_rng_state(session.rng, data["rng_state"])
        return session

    @classmethod
    def load(cls, path, scenario=None, realtime=False):
        """
        Rebuild a session from a save file. The clock resumes at the saved
        reading but is not started; call start() to continue playing.
        """
        with open(path, encoding="utf-8") as handle:
            data = json.load(handle)
        session = cls.from_dict(data, scenario, realtime)
        logger.info("Session loaded from %s", path)
        return session
