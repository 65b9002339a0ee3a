"""
Core simulation logic: the clock that makes the farm grow.

Two simpy processes run while the game is being played:
- the growth tick checks every crop and animal on the farm for maturity and
  gives each growing animal its breeding chance;
- the day tick advances the calendar.

The simpy environment is the only time source. Time stands still unless
the host advances the environment, so a paused game does not grow.
"""
import logging

import simpy
from simpy.events import Initialize

from . import events
from .config import MESSAGES, day_duration_ms
from .errors import FarmError

logger = logging.getLogger(__name__)


class FarmSimulation:
    def __init__(self, env, ledger, bus, config_scenario, rng=None):
        self.env = env
        self.ledger = ledger
        self.bus = bus
        self.config = config_scenario
        self.rng = rng if rng is not None else ledger.rng
        self.tick_interval = config_scenario["TICK_INTERVAL_MS"]
        self.day_duration = day_duration_ms(config_scenario)

        self.growth_process = None
        self.day_process = None
        self.is_running = False
        self.is_paused = False
        self.day_started_at = None
        self._epoch = 0

        # Stats
        self.ticks_processed = 0
        self.tick_failures = 0
        self.days_advanced = 0

        bus.subscribe(events.GAME_WON, self._on_game_over)
        bus.subscribe(events.GAME_LOST, self._on_game_over)

    def now(self):
        return self.env.now

    # --- scheduling ---

    def start(self, day_elapsed=0):
        """
        Spawn the growth and day ticks. `day_elapsed` is how much of the
        current day has already gone by (used when continuing a saved game).
        """
        if self.is_running:
            logger.warning("Simulation clock already running")
            return False
        if self.ledger.is_game_over():
            logger.warning("Not starting the clock, the game is over")
            return False
        self._epoch += 1
        self.growth_process = self.env.process(self._growth_loop(self._epoch))
        day_elapsed = min(max(0, day_elapsed), self.day_duration)
        self.day_process = self.env.process(self._day_loop(self._epoch, self.day_duration - day_elapsed))
        self.day_started_at = self.env.now - day_elapsed
        self.is_running = True
        self.is_paused = False
        logger.debug("Clock started at %s (tick %sms, day %sms)",
                     self.env.now, self.tick_interval, self.day_duration)
        return True

    def stop(self):
        if not self.is_running:
            return False
        # invalidate the running loops first so a restart never overlaps them
        self._epoch += 1
        for process in (self.growth_process, self.day_process):
            self._cancel(process)
        self.growth_process = None
        self.day_process = None
        self.is_running = False
        logger.debug("Clock stopped at %s", self.env.now)
        return True

    def _cancel(self, process):
        if process is None or not process.is_alive:
            return
        # a process cannot interrupt itself, and one that has not started yet
        # sees the stale epoch as soon as it runs
        if process is self.env.active_process or isinstance(process.target, Initialize):
            return
        process.interrupt("stopped")

    def pause(self):
        stopped = self.stop()
        if stopped:
            self.is_paused = True
            logger.debug("Clock paused at %s", self.env.now)
        return stopped

    def resume(self):
        if not self.is_paused:
            return False
        self.is_paused = False
        sync = getattr(self.env, "sync", None)
        if sync is not None:
            # realtime environments would otherwise try to catch up on the pause
            sync()
        return self.start()

    def advance(self, duration):
        """Run the farm forward by `duration` milliseconds of game time."""
        if self.is_paused:
            logger.debug("Clock is paused, not advancing")
            return self.env.now
        if duration <= 0:
            return self.env.now
        target = self.env.now + duration
        self.env.run(until=target)
        # run(until=...) stops before events due exactly at the target time
        while self.env.peek() == target:
            self.env.step()
        return self.env.now

    def run_until_game_over(self, limit=None):
        """Advance day by day until the game ends or `limit` ms have passed."""
        end = None if limit is None else self.env.now + limit
        while not self.ledger.is_game_over() and self.is_running:
            step = self.day_duration
            if end is not None:
                step = min(step, end - self.env.now)
                if step <= 0:
                    break
            self.advance(step)
        return self.ledger.status

    def _on_game_over(self, event):
        self.stop()

    # --- processes ---

    def _growth_loop(self, epoch):
        try:
            while epoch == self._epoch:
                yield self.env.timeout(self.tick_interval)
                if epoch != self._epoch:
                    return
                if self.ledger.is_game_over():
                    self.stop()
                    return
                self.growth_tick()
        except simpy.Interrupt:
            logger.debug("Growth tick interrupted")

    def _day_loop(self, epoch, first_day):
        delay = first_day
        try:
            while epoch == self._epoch:
                yield self.env.timeout(delay)
                delay = self.day_duration
                if epoch != self._epoch:
                    return
                self.advance_day()
        except simpy.Interrupt:
            logger.debug("Day tick interrupted")

    def advance_day(self):
        logger.debug("Advancing from day %s", self.ledger.day)
        advanced = self.ledger.advance_day()
        if advanced:
            self.days_advanced += 1
        self.day_started_at = self.env.now
        if self.ledger.is_game_over():
            self.stop()
        return advanced

    # --- the sweep ---

    def growth_tick(self):
        """Process one tick for every crop and animal on the farm."""
        if self.ledger.is_game_over():
            return False
        now = self.env.now
        for crop in self.ledger.growing_crops():
            try:
                self._update_crop(crop, now)
            except Exception:
                self.tick_failures += 1
                logger.exception("Tick failed for crop %s", getattr(crop, "id", crop))
        # newborns join the list during the sweep and are checked next tick
        for animal in self.ledger.animals_on_farm():
            if self.ledger.is_game_over():
                break
            try:
                self._update_animal(animal, now)
            except Exception:
                self.tick_failures += 1
                logger.exception("Tick failed for animal %s", getattr(animal, "id", animal))
        self.ticks_processed += 1
        self.bus.emit(events.TIMER_UPDATE, crops=len(self.ledger.inventory.crops),
                      animals=len(self.ledger.inventory.animals),
                      day_progress=self.day_progress())
        return True

    def _update_crop(self, crop, now):
        if crop.refresh(now):
            logger.debug("Crop matured: %s (%s)", crop.name, crop.id)
            self.bus.emit(events.CROP_MATURED, crop_id=crop.id, name=crop.name,
                          message=MESSAGES["CROP_MATURED"].format(name=crop.name))

    def _update_animal(self, animal, now):
        if animal.refresh(now):
            logger.debug("Animal matured: %s (%s)", animal.name, animal.id)
            self.bus.emit(events.ANIMAL_MATURED, animal_id=animal.id, name=animal.name,
                          has_offspring=animal.has_offspring,
                          message=MESSAGES["ANIMAL_MATURED"].format(name=animal.name))
        if animal.status == animal.GROWING and animal.can_breed(now):
            self._attempt_breeding(animal, now)

    def _attempt_breeding(self, animal, now):
        result = animal.attempt_breeding(now, self.rng)
        if not result.attempted:
            return result
        logger.debug("Breeding attempted for %s (%s): bred=%s survived=%s",
                     animal.name, animal.id, result.bred, result.survived)
        if result.survived and result.offspring is not None:
            try:
                self.ledger.add_offspring(result.offspring)
            except FarmError as exc:
                logger.warning("Offspring of %s not added: %s", animal.id, exc)
                return result
            self.bus.emit(events.ANIMAL_BRED, parent_id=animal.id,
                          offspring_id=result.offspring.id, name=animal.name,
                          message=MESSAGES["ANIMAL_BRED"].format(name=animal.name))
        return result

    # --- progress queries ---

    def day_progress(self):
        if self.day_started_at is None or self.day_duration <= 0:
            return 0.0
        elapsed = self.env.now - self.day_started_at
        return min(100.0, max(0.0, elapsed / self.day_duration * 100))

    def day_time_remaining(self):
        if self.day_started_at is None:
            return 0
        return max(0, self.day_duration - (self.env.now - self.day_started_at))

    def crop_progress(self, crop_id):
        crop = self.ledger.find_crop(crop_id)
        if crop is None:
            return None
        now = self.env.now
        info = crop.display_info(now)
        info.update(remaining_ms=crop.remaining_duration(now), matures_at=crop.matures_at(),
                    is_mature=crop.is_mature(now))
        return info

    def animal_progress(self, animal_id):
        animal = self.ledger.find_animal(animal_id)
        if animal is None:
            return None
        now = self.env.now
        info = animal.display_info(now)
        info.update(remaining_ms=animal.remaining_duration(now), matures_at=animal.matures_at(),
                    is_mature=animal.is_mature(now))
        return info

    def all_progress(self):
        return {
            "crops": [self.crop_progress(c.id) for c in self.ledger.growing_crops()],
            "animals": [self.animal_progress(a.id) for a in self.ledger.animals_on_farm()],
            "day_progress": self.day_progress(),
            "day_time_remaining": self.day_time_remaining(),
        }

    def status(self):
        return {
            "is_running": self.is_running,
            "is_paused": self.is_paused,
            "has_growth_tick": self.growth_process is not None,
            "has_day_tick": self.day_process is not None,
            "now": self.env.now,
            "day_progress": self.day_progress(),
            "day_time_remaining": self.day_time_remaining(),
            "ticks_processed": self.ticks_processed,
        }
