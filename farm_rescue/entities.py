"""
Entities growing on the farm: crops and animals.

Progress is always derived from the anchor time (plant/place time) and the
current clock reading, never stored. Every time-dependent method takes the
clock reading `now` in milliseconds.
"""
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Optional

from .config import (
    BREEDING_PROGRESS_THRESHOLD, MINUTE_MS, NEUTRAL_DEMAND,
    get_animal_definition, get_crop_definition,
)
from .errors import UnknownTypeError
from .formatting import format_time

logger = logging.getLogger(__name__)


def new_entity_id(kind):
    return f"{kind}_{uuid.uuid4().hex[:12]}"


class GrowableEntity:
    """
    Shared lifecycle for anything that grows on a timer.
    STATUS_ORDER lists the statuses in the only order they may be entered.
    """
    KIND = "entity"
    STATUS_ORDER = ()
    STATUS_LABELS = {}
    INITIAL = None
    GROWING = "growing"
    MATURE = "mature"

    def __init__(self, definition, now=0, speed_multiplier=1):
        self.id = new_entity_id(self.KIND)
        self.type_id = definition["id"]
        self.name = definition["name"]
        self.tier = definition.get("tier", 1)
        self.description = definition.get("description", "")
        self.base_sell_price = definition["base_sell_price"]
        self.growth_minutes = definition["growth_minutes"]
        self.growth_duration_ms = self.growth_minutes * MINUTE_MS / speed_multiplier

        self.status = self.INITIAL
        self.anchor_time = None
        self.created_at = now

    def __repr__(self):
        return f"{type(self).__name__}({self.type_id}, {self.id}, {self.status})"

    # --- lifecycle ---

    def _set_status(self, new_status):
        """Move forward in STATUS_ORDER. Regressions are refused, not raised."""
        order = self.STATUS_ORDER
        if order.index(new_status) <= order.index(self.status):
            logger.warning("%s: refusing status change %s -> %s",
                           self.id, self.status, new_status)
            return False
        self.status = new_status
        return True

    def activate(self, now):
        """Start growing. Only valid from the initial status."""
        if self.status != self.INITIAL or self.anchor_time is not None:
            logger.warning("%s (%s) cannot be activated from status %s",
                           self.name, self.id, self.status)
            return False
        self._set_status(self.GROWING)
        self.anchor_time = now
        logger.debug("%s (%s) started growing at %s, matures at %s",
                     self.name, self.id, now, now + self.growth_duration_ms)
        return True

    def elapsed(self, now):
        if self.anchor_time is None:
            return 0
        return max(0, now - self.anchor_time)

    def refresh(self, now):
        """
        Recompute the derived status. Returns True only if this call moved
        the entity from growing to mature.
        """
        if self.status != self.GROWING:
            return False
        if self.elapsed(now) < self.growth_duration_ms:
            return False
        self._set_status(self.MATURE)
        logger.debug("%s (%s) is now mature", self.name, self.id)
        return True

    def is_growing(self, now):
        self.refresh(now)
        return self.status == self.GROWING

    def is_mature(self, now):
        self.refresh(now)
        return self.status == self.MATURE

    # --- derived progress ---

    def growth_progress(self, now):
        if self.status == self.INITIAL:
            return 0.0
        if self.status != self.GROWING:
            return 1.0
        if self.growth_duration_ms <= 0:
            return 1.0
        return min(1.0, max(0.0, self.elapsed(now) / self.growth_duration_ms))

    def progress_percent(self, now):
        return self.growth_progress(now) * 100

    def remaining_duration(self, now):
        if self.status != self.GROWING:
            return 0
        return max(0, self.growth_duration_ms - self.elapsed(now))

    def matures_at(self):
        if self.anchor_time is None:
            return None
        return self.anchor_time + self.growth_duration_ms

    # --- pricing ---

    def sell_price(self, demand_index):
        if (isinstance(demand_index, bool) or not isinstance(demand_index, (int, float))
                or not math.isfinite(demand_index) or demand_index <= 0):
            logger.warning("%s: invalid demand index %r, using %s",
                           self.id, demand_index, NEUTRAL_DEMAND)
            demand_index = NEUTRAL_DEMAND
        return math.floor(self.base_sell_price * demand_index)

    def acquisition_cost(self):
        raise NotImplementedError

    def profit(self, demand_index):
        return self.sell_price(demand_index) - self.acquisition_cost()

    # --- display / persistence ---

    def status_label(self):
        return self.STATUS_LABELS.get(self.status, "Unknown")

    def display_info(self, now):
        self.refresh(now)
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type_id,
            "status": self.status_label(),
            "progress": round(self.progress_percent(now), 1),
            "remaining_time": format_time(self.remaining_duration(now)),
            "tier": self.tier,
            "base_sell_price": self.base_sell_price,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type_id,
            "status": self.status,
            "anchor_time": self.anchor_time,
            "growth_duration_ms": self.growth_duration_ms,
            "created_at": self.created_at,
        }

    def _restore_common(self, data):
        self.id = data["id"]
        self.status = data.get("status", self.INITIAL)
        self.anchor_time = data.get("anchor_time")
        self.growth_duration_ms = data.get("growth_duration_ms", self.growth_duration_ms)
        self.created_at = data.get("created_at", self.created_at)


class Crop(GrowableEntity):
    """
    A crop from Tom's seed store.
    States: seed -> growing -> mature -> harvested
    """
    KIND = "crop"
    SEED = "seed"
    HARVESTED = "harvested"
    INITIAL = SEED
    STATUS_ORDER = (SEED, GrowableEntity.GROWING, GrowableEntity.MATURE, HARVESTED)
    STATUS_LABELS = {
        SEED: "Not Planted",
        GrowableEntity.GROWING: "Growing",
        GrowableEntity.MATURE: "Ready to Harvest",
        HARVESTED: "Harvested",
    }

    def __init__(self, type_id, now=0, definitions=None, speed_multiplier=1):
        definition = get_crop_definition(type_id, definitions)
        if definition is None:
            logger.error("Crop: invalid crop type %r", type_id)
            raise UnknownTypeError(type_id, "crop")
        super().__init__(definition, now, speed_multiplier)
        self.seed_cost = definition["seed_cost"]
        self.harvest_time = None

    def plant(self, now):
        return self.activate(now)

    def harvest(self, now):
        if not self.is_mature(now):
            logger.warning("%s (%s) cannot be harvested from status %s",
                           self.name, self.id, self.status)
            return False
        self._set_status(self.HARVESTED)
        self.harvest_time = now
        return True

    def is_harvested(self):
        return self.status == self.HARVESTED

    def acquisition_cost(self):
        return self.seed_cost

    def display_info(self, now):
        info = super().display_info(now)
        info["seed_cost"] = self.seed_cost
        return info

    def to_dict(self):
        data = super().to_dict()
        data["harvest_time"] = self.harvest_time
        return data

    @classmethod
    def from_dict(cls, data, definitions=None, speed_multiplier=1):
        crop = cls(data["type"], data.get("created_at", 0), definitions, speed_multiplier)
        crop._restore_common(data)
        crop.harvest_time = data.get("harvest_time")
        return crop


@dataclass
class BreedingResult:
    attempted: bool = False
    bred: bool = False
    survived: bool = False
    offspring: Optional["Animal"] = None


class Animal(GrowableEntity):
    """
    Livestock from Henry's animal farm.
    States: young -> growing -> mature

    While growing, an animal gets exactly one breeding attempt. A surviving
    offspring is owned by this animal (and only this animal) and starts
    growing immediately.
    """
    KIND = "animal"
    YOUNG = "young"
    INITIAL = YOUNG
    STATUS_ORDER = (YOUNG, GrowableEntity.GROWING, GrowableEntity.MATURE)
    STATUS_LABELS = {
        YOUNG: "Not Placed",
        GrowableEntity.GROWING: "Growing",
        GrowableEntity.MATURE: "Ready to Sell",
    }

    def __init__(self, type_id, is_purchased=True, now=0, definitions=None, speed_multiplier=1):
        definition = get_animal_definition(type_id, definitions)
        if definition is None:
            logger.error("Animal: invalid animal type %r", type_id)
            raise UnknownTypeError(type_id, "animal")
        super().__init__(definition, now, speed_multiplier)
        self._definitions = definitions
        self._speed_multiplier = speed_multiplier
        self.purchase_cost = definition["purchase_cost"]
        self.breeding_chance = definition["breeding_chance"]
        self.offspring_survival_rate = definition["offspring_survival_rate"]

        self.is_purchased = is_purchased
        self.breeding_attempted = False
        self.has_offspring = False
        self.offspring = []

    def place(self, now):
        return self.activate(now)

    # --- breeding ---

    def can_breed(self, now):
        if not self.is_growing(now):
            return False
        if self.breeding_attempted:
            return False
        return self.growth_progress(now) >= BREEDING_PROGRESS_THRESHOLD

    def attempt_breeding(self, now, rng):
        """
        The one breeding attempt of this animal's life. The attempt is
        latched before any dice are rolled, so a failed attempt still counts.
        """
        result = BreedingResult()
        if self.breeding_attempted:
            logger.debug("%s (%s) already attempted breeding", self.name, self.id)
            return result
        if not self.is_growing(now):
            logger.debug("%s (%s) is not growing, cannot breed", self.name, self.id)
            return result

        self.breeding_attempted = True
        result.attempted = True

        if rng.random() >= self.breeding_chance:
            logger.debug("%s (%s) breeding failed (chance %.2f)",
                         self.name, self.id, self.breeding_chance)
            return result

        result.bred = True
        self.has_offspring = True
        offspring = Animal(self.type_id, is_purchased=False, now=now,
                           definitions=self._definitions,
                           speed_multiplier=self._speed_multiplier)
        # breeding/survival odds may have been tuned on the parent
        offspring.breeding_chance = self.breeding_chance
        offspring.offspring_survival_rate = self.offspring_survival_rate

        if rng.random() >= self.offspring_survival_rate:
            logger.debug("%s (%s) offspring did not survive (rate %.2f)",
                         self.name, self.id, self.offspring_survival_rate)
            return result

        result.survived = True
        self.offspring.append(offspring)
        offspring.activate(now)
        result.offspring = offspring
        logger.info("%s (%s) gave birth to %s", self.name, self.id, offspring.id)
        return result

    def total_offspring_count(self):
        return sum(1 + child.total_offspring_count() for child in self.offspring)

    def all_offspring(self):
        flat = []
        for child in self.offspring:
            flat.append(child)
            flat.extend(child.all_offspring())
        return flat

    # --- pricing / display ---

    def acquisition_cost(self):
        return self.purchase_cost if self.is_purchased else 0

    def display_info(self, now):
        info = super().display_info(now)
        info.update({
            "purchase_cost": self.purchase_cost,
            "is_purchased": self.is_purchased,
            "has_offspring": self.has_offspring,
            "offspring_count": len(self.offspring),
            "breeding_chance": self.breeding_chance,
            "can_breed": self.can_breed(now),
        })
        return info

    def to_dict(self):
        data = super().to_dict()
        data.update({
            "is_purchased": self.is_purchased,
            "breeding_attempted": self.breeding_attempted,
            "has_offspring": self.has_offspring,
            "breeding_chance": self.breeding_chance,
            "offspring_survival_rate": self.offspring_survival_rate,
            "offspring": [child.to_dict() for child in self.offspring],
        })
        return data

    @classmethod
    def from_dict(cls, data, definitions=None, speed_multiplier=1, known=None):
        """
        Rebuild an animal and its offspring tree. `known` maps ids to
        animals already rebuilt (e.g. offspring still on the farm) so the
        tree points at the same objects as the ledger.
        """
        known = {} if known is None else known
        if data["id"] in known:
            return known[data["id"]]
        animal = cls(data["type"], data.get("is_purchased", True),
                     data.get("created_at", 0), definitions, speed_multiplier)
        animal._restore_common(data)
        animal.breeding_attempted = data.get("breeding_attempted", False)
        animal.has_offspring = data.get("has_offspring", False)
        animal.breeding_chance = data.get("breeding_chance", animal.breeding_chance)
        animal.offspring_survival_rate = data.get(
            "offspring_survival_rate", animal.offspring_survival_rate)
        known[animal.id] = animal
        animal.offspring = [
            cls.from_dict(child, definitions, speed_multiplier, known)
            for child in data.get("offspring", [])
        ]
        return animal
