"""
The farm ledger: money, calendar, weather window, inventory and statistics.

This is the single owner of all mutable game state. Every mutation is
validated completely before anything changes, so a refused call leaves the
ledger exactly as it was. Once the game is won or lost the ledger refuses
every further mutation.
"""
import logging
import math
import random
from dataclasses import asdict, dataclass

from . import events
from .config import (
    MESSAGES, MILESTONES, NEUTRAL_DEMAND, get_animal_definition, get_crop_definition,
)
from .entities import Animal, Crop
from .errors import (
    GameOverError, InsufficientFundsError, InvalidAmountError, LedgerError,
    NoCapacityError, NotFoundError, NotMatureError,
)
from .events import EventBus
from .formatting import format_day, format_money, format_percentage
from .resources import (
    ANIMALS, CROPS, HARVESTED_CROPS, SEEDS, YOUNG_ANIMALS, FarmInventory,
)
from .weather import Weather, generate_forecast, roll_forecast

logger = logging.getLogger(__name__)

PLAYING = "playing"
WON = "won"
LOST = "lost"


@dataclass
class Statistics:
    total_crops_sold: int = 0
    total_animals_sold: int = 0
    total_crops_purchased: int = 0
    total_animals_purchased: int = 0
    total_money_earned: int = 0
    total_money_spent: int = 0
    best_single_sale: int = 0
    total_offspring_born: int = 0
    successful_breedings: int = 0


def _validate_amount(amount):
    if (isinstance(amount, bool) or not isinstance(amount, (int, float))
            or not math.isfinite(amount) or amount < 0):
        raise InvalidAmountError(amount)


class FarmLedger:
    def __init__(self, config, bus=None, clock=None, rng=None, forecast=None):
        self.config = config
        self.bus = bus if bus is not None else EventBus()
        self.clock = clock if clock is not None else (lambda: 0)
        self.rng = rng if rng is not None else random.Random()
        self.crop_table = config.get("CROPS")
        self.animal_table = config.get("ANIMALS")
        self.weather_rules = config.get("WEATHER_DEMAND_RULES")
        self.speed_multiplier = config.get("SPEED_MULTIPLIER", 1)

        self.money = config["STARTING_MONEY"]
        self.day = 1
        self.goal = config["GOAL_MONEY"]
        self.total_days = config["TOTAL_DAYS"]
        self.forecast_days = config["FORECAST_DAYS"]
        self.status = PLAYING
        if forecast is None:
            forecast = generate_forecast(self.forecast_days, self.day, self.rng, self.weather_rules)
        self.forecast = forecast
        self.inventory = FarmInventory(config)
        self.statistics = Statistics()
        self.milestones = sorted(config.get("MILESTONES", MILESTONES), key=lambda m: m["amount"])
        self.milestones_reached = []
        self.started_at = self.clock()

        logger.debug("Ledger created: money=%s goal=%s days=%s",
                     self.money, self.goal, self.total_days)

    def now(self):
        return self.clock()

    def crop_definition(self, type_id):
        return get_crop_definition(type_id, self.crop_table)

    def animal_definition(self, type_id):
        return get_animal_definition(type_id, self.animal_table)

    def new_crop(self, type_id):
        return Crop(type_id, self.now(), self.crop_table, self.speed_multiplier)

    def new_animal(self, type_id):
        return Animal(type_id, True, self.now(), self.animal_table, self.speed_multiplier)

    # --- status ---

    def is_game_over(self):
        return self.status in (WON, LOST)

    def _ensure_playing(self):
        if self.is_game_over():
            raise GameOverError()

    def _set_won(self):
        self.status = WON
        logger.info("Game won with %s on day %s", format_money(self.money), self.day)
        self.bus.emit(events.GAME_WON, final_money=self.money, days_used=self.day,
                      statistics=asdict(self.statistics))

    def _set_lost(self):
        self.status = LOST
        shortfall = self.goal - self.money
        logger.info("Game lost, %s short of the goal", format_money(shortfall))
        self.bus.emit(events.GAME_LOST, final_money=self.money, shortfall=shortfall,
                      statistics=asdict(self.statistics))

    def _check_win(self):
        if self.status == PLAYING and self.money >= self.goal:
            self._set_won()

    def _check_lose(self):
        if self.status == PLAYING and self.day > self.total_days and self.money < self.goal:
            self._set_lost()

    def _check_milestones(self):
        for milestone in self.milestones:
            amount = milestone["amount"]
            if amount in self.milestones_reached or self.money < amount:
                continue
            self.milestones_reached.append(amount)
            logger.info("Milestone reached: %s (%s)", milestone["title"], format_money(amount))
            self.bus.emit(events.MILESTONE_REACHED, milestone=dict(milestone))

    # --- money ---

    def can_afford(self, amount):
        return (isinstance(amount, (int, float)) and not isinstance(amount, bool)
                and math.isfinite(amount) and self.money >= amount)

    def _apply_credit(self, amount, memo):
        self.money += amount
        self.statistics.total_money_earned += amount
        if amount > self.statistics.best_single_sale:
            self.statistics.best_single_sale = amount
        logger.debug("Credit %s (%s), balance %s", format_money(amount), memo,
                     format_money(self.money))
        self._check_milestones()
        self._check_win()
        self.bus.emit(events.MONEY_CHANGED, money=self.money, delta=amount,
                      memo=memo, progress=self.progress())

    def _apply_debit(self, amount, memo):
        self.money -= amount
        self.statistics.total_money_spent += amount
        logger.debug("Debit %s (%s), balance %s", format_money(amount), memo,
                     format_money(self.money))
        self.bus.emit(events.MONEY_CHANGED, money=self.money, delta=-amount,
                      memo=memo, progress=self.progress())

    def _check_debit(self, amount):
        _validate_amount(amount)
        if self.money < amount:
            raise InsufficientFundsError(amount, self.money)

    def credit(self, amount, memo="unknown"):
        self._ensure_playing()
        _validate_amount(amount)
        self._apply_credit(amount, memo)
        return self.money

    def debit(self, amount, memo="unknown"):
        self._ensure_playing()
        self._check_debit(amount)
        self._apply_debit(amount, memo)
        return self.money

    # --- calendar and weather ---

    def advance_day(self):
        if self.is_game_over():
            logger.warning("advance_day called after the game ended (%s)", self.status)
            return False
        self.day += 1
        self.forecast = roll_forecast(self.forecast, self.day, self.forecast_days,
                                      self.rng, self.weather_rules)
        logger.debug("Advanced to day %s, forecast %s", self.day,
                     [(w.day, w.value) for w in self.forecast])
        self._check_lose()
        self.bus.emit(events.DAY_ADVANCED, day=self.day,
                      days_remaining=self.days_remaining(), money=self.money)
        return True

    def days_remaining(self):
        return max(0, self.total_days - self.day + 1)

    def is_last_day(self):
        return self.day == self.total_days

    def current_weather(self):
        for weather in self.forecast:
            if weather.day == self.day:
                return weather
        return None

    def current_demand_index(self):
        weather = self.current_weather()
        return weather.demand_index if weather else NEUTRAL_DEMAND

    def progress(self):
        if self.goal <= 0:
            return 100.0
        return min(100.0, self.money / self.goal * 100)

    # --- inventory ---

    def _require(self, collection, entity_id, message):
        entity = self.inventory.find(collection, entity_id)
        if entity is None:
            raise NotFoundError(message)
        return entity

    def add_to_seed_stock(self, crop, cost=0, memo=None):
        """Record a purchased seed, paying `cost` for it in the same step."""
        self._ensure_playing()
        if not isinstance(crop, Crop) or crop.status != Crop.SEED:
            logger.error("add_to_seed_stock: not an unplanted crop: %r", crop)
            raise LedgerError(MESSAGES["INVALID_ITEM"])
        self._check_debit(cost)
        if cost:
            self._apply_debit(cost, memo or f"Bought {crop.name} seed")
        self.inventory.add(SEEDS, crop)
        self.statistics.total_crops_purchased += 1
        return crop

    def add_to_young_stock(self, animal, cost=0, memo=None):
        self._ensure_playing()
        if not isinstance(animal, Animal) or animal.status != Animal.YOUNG:
            logger.error("add_to_young_stock: not an unplaced animal: %r", animal)
            raise LedgerError(MESSAGES["INVALID_ITEM"])
        self._check_debit(cost)
        if cost:
            self._apply_debit(cost, memo or f"Bought {animal.name}")
        self.inventory.add(YOUNG_ANIMALS, animal)
        self.statistics.total_animals_purchased += 1
        return animal

    def plant(self, crop_id):
        self._ensure_playing()
        crop = self._require(SEEDS, crop_id, MESSAGES["SEED_NOT_FOUND"])
        if not self.inventory.has_crop_capacity():
            raise NoCapacityError(MESSAGES["NO_SPACE_CROPS"])
        self.inventory.move(SEEDS, CROPS, crop_id)
        crop.plant(self.now())
        logger.debug("Planted %s (%s)", crop.name, crop.id)
        return crop

    def place(self, animal_id):
        self._ensure_playing()
        animal = self._require(YOUNG_ANIMALS, animal_id, MESSAGES["ANIMAL_NOT_IN_INVENTORY"])
        if not self.inventory.has_animal_capacity():
            raise NoCapacityError(MESSAGES["NO_SPACE_ANIMALS"])
        self.inventory.move(YOUNG_ANIMALS, ANIMALS, animal_id)
        animal.place(self.now())
        logger.debug("Placed %s (%s)", animal.name, animal.id)
        return animal

    def harvest(self, crop_id):
        self._ensure_playing()
        crop = self._require(CROPS, crop_id, MESSAGES["CROP_NOT_ON_FARM"])
        now = self.now()
        if not crop.is_mature(now):
            raise NotMatureError()
        self.inventory.move(CROPS, HARVESTED_CROPS, crop_id)
        crop.harvest(now)
        logger.debug("Harvested %s (%s)", crop.name, crop.id)
        return crop

    def sell_crop(self, crop_id, price):
        """Remove a harvested crop from the farm and credit its sale price."""
        self._ensure_playing()
        self._require(HARVESTED_CROPS, crop_id, MESSAGES["CROP_NOT_IN_INVENTORY"])
        _validate_amount(price)
        crop = self.inventory.remove(HARVESTED_CROPS, crop_id)
        self.statistics.total_crops_sold += 1
        self._apply_credit(price, f"Sold {crop.name}")
        return crop

    def sell_animal(self, animal_id, price):
        self._ensure_playing()
        animal = self._require(ANIMALS, animal_id, MESSAGES["ANIMAL_NOT_ON_FARM"])
        if not animal.is_mature(self.now()):
            raise NotMatureError()
        _validate_amount(price)
        self.inventory.remove(ANIMALS, animal_id)
        self.statistics.total_animals_sold += 1
        self._apply_credit(price, f"Sold {animal.name}")
        return animal

    def add_offspring(self, offspring):
        """
        Put a newborn straight into the pens. Breeding is not a player
        action, so the animal slot limit does not apply here.
        """
        self._ensure_playing()
        if not isinstance(offspring, Animal) or offspring.status == Animal.YOUNG:
            logger.error("add_offspring: offspring must already be growing: %r", offspring)
            raise LedgerError(MESSAGES["INVALID_ITEM"])
        self.inventory.add(ANIMALS, offspring)
        self.statistics.total_offspring_born += 1
        self.statistics.successful_breedings += 1
        return offspring

    def find_seed(self, crop_id):
        return self.inventory.find(SEEDS, crop_id)

    def find_crop(self, crop_id):
        return self.inventory.find(CROPS, crop_id)

    def find_harvested_crop(self, crop_id):
        return self.inventory.find(HARVESTED_CROPS, crop_id)

    def find_young_animal(self, animal_id):
        return self.inventory.find(YOUNG_ANIMALS, animal_id)

    def find_animal(self, animal_id):
        return self.inventory.find(ANIMALS, animal_id)

    def seeds(self):
        return list(self.inventory.seeds)

    def growing_crops(self):
        return list(self.inventory.crops)

    def harvested_crops(self):
        return list(self.inventory.harvested_crops)

    def young_animals(self):
        return list(self.inventory.young_animals)

    def animals_on_farm(self):
        return list(self.inventory.animals)

    def has_crop_capacity(self):
        return self.inventory.has_crop_capacity()

    def has_animal_capacity(self):
        return self.inventory.has_animal_capacity()

    def available_crop_slots(self):
        return self.inventory.available_crop_slots()

    def available_animal_slots(self):
        return self.inventory.available_animal_slots()

    # --- read-only views ---

    def game_info(self):
        weather = self.current_weather()
        return {
            "money": self.money,
            "formatted_money": format_money(self.money),
            "day": self.day,
            "day_label": format_day(self.day),
            "goal": self.goal,
            "days_remaining": self.days_remaining(),
            "status": self.status,
            "progress": self.progress(),
            "formatted_progress": format_percentage(self.progress() / 100),
            "money_needed": max(0, self.goal - self.money),
            "current_weather": weather.to_dict() if weather else None,
            "forecast": [w.to_dict() for w in self.forecast],
            "inventory_counts": self.inventory.counts(),
            "statistics": asdict(self.statistics),
            "milestones_reached": list(self.milestones_reached),
            "is_last_day": self.is_last_day(),
            "is_game_over": self.is_game_over(),
        }

    def statistics_snapshot(self):
        stats = asdict(self.statistics)
        stats.update({
            "net_profit": self.statistics.total_money_earned - self.statistics.total_money_spent,
            "play_time": self.now() - self.started_at,
            "final_money": self.money,
            "days_played": self.day,
        })
        return stats

    # --- persistence ---

    def snapshot(self):
        return {
            "money": self.money,
            "day": self.day,
            "goal": self.goal,
            "status": self.status,
            "forecast": [w.to_dict() for w in self.forecast],
            "inventory": self.inventory.to_dict(),
            "statistics": asdict(self.statistics),
            "milestones_reached": list(self.milestones_reached),
            "started_at": self.started_at,
            "clock_time": self.now(),
        }

    @classmethod
    def restore(cls, data, config, bus=None, clock=None, rng=None):
        # reuse the saved window so restoring draws nothing from the rng
        rules = config.get("WEATHER_DEMAND_RULES")
        forecast = [Weather.from_dict(w, rules) for w in data["forecast"]]
        ledger = cls(config, bus, clock, rng, forecast)
        ledger.money = data["money"]
        ledger.day = data["day"]
        ledger.goal = data.get("goal", ledger.goal)
        ledger.status = data.get("status", PLAYING)
        ledger.inventory = FarmInventory.from_dict(
            config, data.get("inventory", {}), ledger.crop_table, ledger.animal_table)
        ledger.statistics = Statistics(**data.get("statistics", {}))
        ledger.milestones_reached = list(data.get("milestones_reached", []))
        ledger.started_at = data.get("started_at", ledger.started_at)
        logger.debug("Ledger restored at day %s with %s", ledger.day, format_money(ledger.money))
        return ledger
