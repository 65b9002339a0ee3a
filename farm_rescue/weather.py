"""
Daily weather and the market demand it drives.

Worse weather means fewer crops reach the market, so prices go up: the
demand index never decreases as the weather value goes down.
"""
import logging
import math
import random
from dataclasses import dataclass, field

from .config import (
    NEUTRAL_DEMAND, WEATHER_DECIMALS, WEATHER_DEMAND_RULES,
    WEATHER_MAX, WEATHER_MIN,
)

logger = logging.getLogger(__name__)


def _is_number(value):
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


def normalize_weather_value(value):
    """Clamp into the weather range and round to the sampling precision."""
    return round(min(WEATHER_MAX, max(WEATHER_MIN, value)), WEATHER_DECIMALS)


def sample_weather_value(rng=None):
    rng = rng or random
    return round(rng.uniform(WEATHER_MIN, WEATHER_MAX), WEATHER_DECIMALS)


def _match_rule(value, rules):
    for rule in rules:
        if rule["min"] <= value <= rule["max"]:
            return rule
    return None


def demand_index_for(value, rules=None):
    """Multiplier of the first rule whose inclusive range contains `value`."""
    rules = WEATHER_DEMAND_RULES if rules is None else rules
    if not _is_number(value):
        logger.warning("Invalid weather value %r, using neutral demand", value)
        return NEUTRAL_DEMAND
    rule = _match_rule(normalize_weather_value(value), rules)
    if rule is None:
        logger.warning("No demand rule matches weather %r, using neutral demand", value)
        return NEUTRAL_DEMAND
    return rule["multiplier"]


def market_condition_for(value, rules=None):
    rules = WEATHER_DEMAND_RULES if rules is None else rules
    if not _is_number(value):
        return "Unknown"
    rule = _match_rule(normalize_weather_value(value), rules)
    return rule["condition"] if rule else "Unknown"


@dataclass(frozen=True)
class Weather:
    day: int
    value: float
    demand_index: float = field(compare=False)
    market_condition: str = field(compare=False)

    @classmethod
    def create(cls, day, value=None, rng=None, rules=None):
        if not isinstance(day, int) or day < 1:
            raise ValueError(f"Weather day must be a positive integer, got {day!r}")
        if value is None:
            value = sample_weather_value(rng)
        elif not _is_number(value):
            logger.warning("Invalid weather value %r for day %s, sampling instead", value, day)
            value = sample_weather_value(rng)
        else:
            value = normalize_weather_value(value)
        return cls(day, value, demand_index_for(value, rules), market_condition_for(value, rules))

    @property
    def description(self):
        if self.value >= WEATHER_MAX:
            return "Perfect Weather"
        if self.value >= 0.80:
            return "Good Weather"
        if self.value >= 0.60:
            return "Fair Weather"
        if self.value >= 0.40:
            return "Poor Weather"
        if self.value >= 0.20:
            return "Bad Weather"
        return "Terrible Weather"

    @property
    def sell_recommendation(self):
        index = self.demand_index
        if index >= 2.0:
            return "BEST time to sell! (2.0x prices)"
        if index >= 1.7:
            return "Excellent time to sell!"
        if index >= 1.5:
            return "Great time to sell!"
        if index >= 1.2:
            return "Good time to sell"
        if index >= 1.0:
            return "Normal prices"
        if index >= 0.9:
            return "Below average prices"
        return "Poor time to sell (wait for worse weather)"

    def to_dict(self):
        return {
            "day": self.day,
            "value": self.value,
            "demand_index": self.demand_index,
            "market_condition": self.market_condition,
        }

    @classmethod
    def from_dict(cls, data, rules=None):
        # derived fields are recomputed from the stored value
        return cls.create(data["day"], data["value"], rules=rules)


def generate_forecast(num_days, start_day=1, rng=None, rules=None):
    """Independent samples for days start_day .. start_day + num_days - 1."""
    if num_days < 1:
        raise ValueError(f"Forecast needs at least one day, got {num_days!r}")
    forecast = [Weather.create(start_day + i, rng=rng, rules=rules) for i in range(num_days)]
    logger.debug("Generated forecast: %s",
                 [(w.day, w.value, w.demand_index) for w in forecast])
    return forecast


def roll_forecast(forecast, current_day, horizon, rng=None, rules=None):
    """
    Drop days before `current_day` and append fresh samples at the tail
    until the window holds `horizon` days again. Existing entries are kept
    as they are.
    """
    window = [w for w in forecast if w.day >= current_day]
    next_day = window[-1].day + 1 if window else current_day
    while len(window) < horizon:
        window.append(Weather.create(next_day, rng=rng, rules=rules))
        next_day += 1
    return window


def worst_weather_for_selling(forecast):
    """Lowest weather value in the forecast, i.e. the highest prices."""
    if not forecast:
        return None
    return min(forecast, key=lambda w: w.value)


def best_weather_for_selling(forecast):
    if not forecast:
        return None
    return max(forecast, key=lambda w: w.value)


def average_demand(forecast):
    if not forecast:
        return NEUTRAL_DEMAND
    return round(sum(w.demand_index for w in forecast) / len(forecast), 2)
