"""
Player commands: everything the UI can ask the farm to do.

Each command checks every precondition first and only then performs its
single ledger mutation. A refused command returns a failed
TransactionResult with a message fit for the player; nothing is changed.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from . import events
from .config import ANIMALS as ANIMAL_TABLE, CROPS as CROP_TABLE, MESSAGES
from .errors import (
    FarmError, GameOverError, InsufficientFundsError, NoCapacityError,
    NotFoundError, NotMatureError, UnknownTypeError,
)
from .formatting import format_money, format_multiplier

logger = logging.getLogger(__name__)


@dataclass
class TransactionResult:
    success: bool
    message: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> Optional[str]:
        return None if self.success else self.message

    def __bool__(self):
        return self.success


def _refused(error):
    return TransactionResult(False, error.message)


class FarmTransactions:
    def __init__(self, ledger, bus):
        self.ledger = ledger
        self.bus = bus

    # --- validation ---

    def _check_playing(self):
        if self.ledger.is_game_over():
            raise GameOverError()

    def _check_afford(self, cost):
        if not self.ledger.can_afford(cost):
            raise InsufficientFundsError(cost, self.ledger.money)

    def _validate_buy_seed(self, type_id):
        self._check_playing()
        definition = self.ledger.crop_definition(type_id)
        if definition is None:
            raise UnknownTypeError(type_id, "crop")
        self._check_afford(definition["seed_cost"])
        return definition

    def _validate_buy_animal(self, type_id):
        self._check_playing()
        definition = self.ledger.animal_definition(type_id)
        if definition is None:
            raise UnknownTypeError(type_id, "animal")
        self._check_afford(definition["purchase_cost"])
        return definition

    def _find(self, finder, entity_id, message):
        entity = finder(entity_id)
        if entity is None:
            raise NotFoundError(message)
        return entity

    def _validate_plant(self, crop_id):
        self._check_playing()
        if not self.ledger.has_crop_capacity():
            raise NoCapacityError(MESSAGES["NO_SPACE_CROPS"])
        return self._find(self.ledger.find_seed, crop_id, MESSAGES["SEED_NOT_FOUND"])

    def _validate_place(self, animal_id):
        self._check_playing()
        if not self.ledger.has_animal_capacity():
            raise NoCapacityError(MESSAGES["NO_SPACE_ANIMALS"])
        return self._find(self.ledger.find_young_animal, animal_id, MESSAGES["ANIMAL_NOT_IN_INVENTORY"])

    def _validate_harvest(self, crop_id):
        self._check_playing()
        crop = self._find(self.ledger.find_crop, crop_id, MESSAGES["CROP_NOT_ON_FARM"])
        if not crop.is_mature(self.ledger.now()):
            raise NotMatureError()
        return crop

    def _validate_sell_crop(self, crop_id):
        self._check_playing()
        return self._find(self.ledger.find_harvested_crop, crop_id, MESSAGES["CROP_NOT_IN_INVENTORY"])

    def _validate_sell_animal(self, animal_id):
        self._check_playing()
        animal = self._find(self.ledger.find_animal, animal_id, MESSAGES["ANIMAL_NOT_ON_FARM"])
        if not animal.is_mature(self.ledger.now()):
            raise NotMatureError()
        return animal

    def _check(self, validator, *args):
        try:
            validator(*args)
        except FarmError as exc:
            return TransactionResult(False, exc.message)
        return TransactionResult(True)

    def can_buy_seed(self, type_id):
        return self._check(self._validate_buy_seed, type_id)

    def can_buy_animal(self, type_id):
        return self._check(self._validate_buy_animal, type_id)

    def can_plant_crop(self, crop_id):
        return self._check(self._validate_plant, crop_id)

    def can_place_animal(self, animal_id):
        return self._check(self._validate_place, animal_id)

    def can_harvest_crop(self, crop_id):
        return self._check(self._validate_harvest, crop_id)

    def can_sell_crop(self, crop_id):
        return self._check(self._validate_sell_crop, crop_id)

    def can_sell_animal(self, animal_id):
        return self._check(self._validate_sell_animal, animal_id)

    # --- shop commands ---

    def buy_seed(self, type_id):
        try:
            definition = self._validate_buy_seed(type_id)
            cost = definition["seed_cost"]
            crop = self.ledger.new_crop(type_id)
            self.ledger.add_to_seed_stock(crop, cost, f"Bought {definition['name']} seed")
        except FarmError as exc:
            logger.debug("buy_seed(%r) refused: %s", type_id, exc)
            return _refused(exc)
        self.bus.emit(events.ITEM_PURCHASED, item_type="seed", item_id=crop.id,
                      type_id=type_id, cost=cost)
        return TransactionResult(
            True,
            MESSAGES["ITEM_PURCHASED"].format(name=crop.name, price=format_money(cost)),
            {"crop": crop, "cost": cost},
        )

    def buy_animal(self, type_id):
        try:
            definition = self._validate_buy_animal(type_id)
            cost = definition["purchase_cost"]
            animal = self.ledger.new_animal(type_id)
            self.ledger.add_to_young_stock(animal, cost, f"Bought {definition['name']}")
        except FarmError as exc:
            logger.debug("buy_animal(%r) refused: %s", type_id, exc)
            return _refused(exc)
        self.bus.emit(events.ANIMAL_PURCHASED, animal_id=animal.id, type_id=type_id)
        self.bus.emit(events.ITEM_PURCHASED, item_type="animal", item_id=animal.id,
                      type_id=type_id, cost=cost)
        return TransactionResult(
            True,
            MESSAGES["ITEM_PURCHASED"].format(name=animal.name, price=format_money(cost)),
            {"animal": animal, "cost": cost},
        )

    def sell_crop(self, crop_id):
        try:
            crop = self._validate_sell_crop(crop_id)
            demand = self.ledger.current_demand_index()
            price = crop.sell_price(demand)
            profit = crop.profit(demand)
            self.ledger.sell_crop(crop_id, price)
        except FarmError as exc:
            logger.debug("sell_crop(%r) refused: %s", crop_id, exc)
            return _refused(exc)
        return self._sold("crop", crop, price, profit, demand)

    def sell_animal(self, animal_id):
        try:
            animal = self._validate_sell_animal(animal_id)
            demand = self.ledger.current_demand_index()
            price = animal.sell_price(demand)
            profit = animal.profit(demand)
            self.ledger.sell_animal(animal_id, price)
        except FarmError as exc:
            logger.debug("sell_animal(%r) refused: %s", animal_id, exc)
            return _refused(exc)
        return self._sold("animal", animal, price, profit, demand)

    def _sold(self, item_type, entity, price, profit, demand):
        logger.debug("Sold %s (%s) for %s at %s", entity.name, entity.id,
                     format_money(price), format_multiplier(demand))
        self.bus.emit(events.ITEM_SOLD, item_type=item_type, item_id=entity.id,
                      type_id=entity.type_id, price=price, profit=profit,
                      demand_index=demand, day=self.ledger.day)
        return TransactionResult(
            True,
            MESSAGES["ITEM_SOLD"].format(name=entity.name, price=format_money(price)),
            {item_type: entity, "sell_price": price, "profit": profit, "demand_index": demand},
        )

    # --- farm commands ---

    def plant_crop(self, crop_id):
        try:
            self._validate_plant(crop_id)
            crop = self.ledger.plant(crop_id)
        except FarmError as exc:
            logger.debug("plant_crop(%r) refused: %s", crop_id, exc)
            return _refused(exc)
        self.bus.emit(events.CROP_PLANTED, crop_id=crop.id, name=crop.name)
        return TransactionResult(True, MESSAGES["CROP_PLANTED"].format(name=crop.name),
                                 {"crop": crop})

    def harvest_crop(self, crop_id):
        try:
            self._validate_harvest(crop_id)
            crop = self.ledger.harvest(crop_id)
        except FarmError as exc:
            logger.debug("harvest_crop(%r) refused: %s", crop_id, exc)
            return _refused(exc)
        self.bus.emit(events.CROP_HARVESTED, crop_id=crop.id, name=crop.name)
        return TransactionResult(True, MESSAGES["CROP_HARVESTED"].format(name=crop.name),
                                 {"crop": crop})

    def place_animal(self, animal_id):
        try:
            self._validate_place(animal_id)
            animal = self.ledger.place(animal_id)
        except FarmError as exc:
            logger.debug("place_animal(%r) refused: %s", animal_id, exc)
            return _refused(exc)
        self.bus.emit(events.ANIMAL_PLACED, animal_id=animal.id, name=animal.name)
        return TransactionResult(True, MESSAGES["ANIMAL_PLACED"].format(name=animal.name),
                                 {"animal": animal})

    def harvest_all_mature(self):
        now = self.ledger.now()
        harvested = []
        for crop in self.ledger.growing_crops():
            if crop.is_mature(now) and self.harvest_crop(crop.id):
                harvested.append(crop)
        count = len(harvested)
        if not count:
            return TransactionResult(False, MESSAGES["NOTHING_TO_HARVEST"], {"count": 0, "crops": []})
        plural = "s" if count > 1 else ""
        return TransactionResult(True, f"Harvested {count} crop{plural}!",
                                 {"count": count, "crops": harvested})

    # --- shop and farm views ---

    def _catalogue_row(self, definition, cost_key):
        demand = self.ledger.current_demand_index()
        price = int(definition["base_sell_price"] * demand)
        return dict(
            definition,
            current_sell_price=price,
            potential_profit=price - definition[cost_key],
            can_afford=self.ledger.can_afford(definition[cost_key]),
        )

    def available_seeds(self):
        table = self.ledger.crop_table or CROP_TABLE
        return [self._catalogue_row(d, "seed_cost") for d in table]

    def available_animals(self):
        table = self.ledger.animal_table or ANIMAL_TABLE
        return [self._catalogue_row(d, "purchase_cost") for d in table]

    def price_info(self, item_type, type_id):
        if item_type == "crop":
            definition, cost_key = self.ledger.crop_definition(type_id), "seed_cost"
        elif item_type == "animal":
            definition, cost_key = self.ledger.animal_definition(type_id), "purchase_cost"
        else:
            return None
        if definition is None:
            return None
        row = self._catalogue_row(definition, cost_key)
        return {
            "purchase_price": definition[cost_key],
            "base_sell_price": definition["base_sell_price"],
            "current_sell_price": row["current_sell_price"],
            "potential_profit": row["potential_profit"],
            "demand_index": self.ledger.current_demand_index(),
        }

    def mature_items(self):
        now = self.ledger.now()
        crops = [c for c in self.ledger.growing_crops() if c.is_mature(now)]
        animals = [a for a in self.ledger.animals_on_farm() if a.is_mature(now)]
        return {"crops": crops, "animals": animals, "total_count": len(crops) + len(animals)}

    def farm_status(self):
        now = self.ledger.now()
        inventory = self.ledger.inventory
        crops = self.ledger.growing_crops()
        animals = self.ledger.animals_on_farm()
        mature_crops = sum(1 for c in crops if c.is_mature(now))
        mature_animals = sum(1 for a in animals if a.is_mature(now))
        return {
            "crop_slots": {
                "used": inventory.crop_slots_used(),
                "total": inventory.max_crop_slots,
                "available": inventory.available_crop_slots(),
            },
            "animal_slots": {
                "used": inventory.animal_slots_used(),
                "total": inventory.max_animal_slots,
                "available": inventory.available_animal_slots(),
            },
            "crops": {"growing": len(crops) - mature_crops, "mature": mature_crops,
                      "total": len(crops)},
            "animals": {"growing": len(animals) - mature_animals, "mature": mature_animals,
                        "with_offspring": sum(1 for a in animals if a.has_offspring),
                        "total": len(animals)},
        }

