"""
Configuration constants for the Farm Rescue simulation.
"""

# Simulation Time Unit: Milliseconds
MINUTE_MS = 60 * 1000

# Weather sampling
WEATHER_MIN = 0.10
WEATHER_MAX = 1.00
WEATHER_DECIMALS = 2

# Animals may only try to breed once they are halfway grown
BREEDING_PROGRESS_THRESHOLD = 0.5

# Neutral demand multiplier used whenever a lookup falls through
NEUTRAL_DEMAND = 1.0

# Crop definitions (Tom's seed store)
CROPS = [
    {
        "id": "wheat",
        "name": "Wheat",
        "seed_cost": 10,
        "growth_minutes": 2,
        "base_sell_price": 18,
        "tier": 1,
        "description": "Fast-growing starter crop. Perfect for early game.",
    },
    {
        "id": "carrot",
        "name": "Carrot",
        "seed_cost": 30,
        "growth_minutes": 3,
        "base_sell_price": 60,
        "tier": 2,
        "description": "Reliable crop with good profit margins.",
    },
    {
        "id": "corn",
        "name": "Corn",
        "seed_cost": 70,
        "growth_minutes": 4,
        "base_sell_price": 150,
        "tier": 3,
        "description": "Popular crop with strong returns.",
    },
    {
        "id": "strawberry",
        "name": "Strawberry",
        "seed_cost": 150,
        "growth_minutes": 5,
        "base_sell_price": 350,
        "tier": 4,
        "description": "Premium crop with excellent profit potential.",
    },
    {
        "id": "watermelon",
        "name": "Watermelon",
        "seed_cost": 300,
        "growth_minutes": 7,
        "base_sell_price": 750,
        "tier": 5,
        "description": "Ultimate crop. Highest profit but requires time and capital.",
    },
]

# Animal definitions (Henry's animal farm)
ANIMALS = [
    {
        "id": "chicken",
        "name": "Chicken",
        "purchase_cost": 40,
        "growth_minutes": 3,
        "base_sell_price": 75,
        "breeding_chance": 0.35,
        "offspring_survival_rate": 0.75,
        "tier": 1,
        "description": "Common farm animal. Good breeding rate.",
    },
    {
        "id": "rabbit",
        "name": "Rabbit",
        "purchase_cost": 100,
        "growth_minutes": 4,
        "base_sell_price": 200,
        "breeding_chance": 0.40,
        "offspring_survival_rate": 0.70,
        "tier": 2,
        "description": "Excellent breeder. Best choice for multiplication strategy.",
    },
    {
        "id": "sheep",
        "name": "Sheep",
        "purchase_cost": 220,
        "growth_minutes": 5,
        "base_sell_price": 480,
        "breeding_chance": 0.30,
        "offspring_survival_rate": 0.65,
        "tier": 3,
        "description": "Steady income source with moderate breeding.",
    },
    {
        "id": "pig",
        "name": "Pig",
        "purchase_cost": 450,
        "growth_minutes": 6,
        "base_sell_price": 1050,
        "breeding_chance": 0.25,
        "offspring_survival_rate": 0.60,
        "tier": 4,
        "description": "High-value livestock. Significant profit potential.",
    },
    {
        "id": "cow",
        "name": "Cow",
        "purchase_cost": 900,
        "growth_minutes": 8,
        "base_sell_price": 2250,
        "breeding_chance": 0.20,
        "offspring_survival_rate": 0.55,
        "tier": 5,
        "description": "Ultimate livestock. Massive profit but slow growth and rare breeding.",
    },
]

# Weather -> demand lookup. Ranges are inclusive on both ends and cover
# every two-decimal value between WEATHER_MIN and WEATHER_MAX.
WEATHER_DEMAND_RULES = [
    {"min": 1.00, "max": 1.00, "multiplier": 0.8, "condition": "Oversupply"},
    {"min": 0.90, "max": 0.99, "multiplier": 0.9, "condition": "Good Supply"},
    {"min": 0.80, "max": 0.89, "multiplier": 1.0, "condition": "Balanced"},
    {"min": 0.70, "max": 0.79, "multiplier": 1.2, "condition": "Slight Shortage"},
    {"min": 0.60, "max": 0.69, "multiplier": 1.3, "condition": "Moderate Shortage"},
    {"min": 0.50, "max": 0.59, "multiplier": 1.4, "condition": "Significant Shortage"},
    {"min": 0.40, "max": 0.49, "multiplier": 1.5, "condition": "High Shortage"},
    {"min": 0.30, "max": 0.39, "multiplier": 1.7, "condition": "Severe Shortage"},
    {"min": 0.10, "max": 0.29, "multiplier": 2.0, "condition": "Critical Shortage"},
]

MILESTONES = [
    {"amount": 100, "title": "First Harvest",
     "message": "Great start! You've made your first $100!"},
    {"amount": 1250, "title": "Quarter Goal",
     "message": "You're 25% there! The farm is coming back to life!"},
    {"amount": 2500, "title": "Halfway Point",
     "message": "Halfway there! Don't give up now!"},
    {"amount": 3750, "title": "Three Quarters",
     "message": "Almost there! The farm is within reach!"},
    {"amount": 5000, "title": "Victory",
     "message": "SUCCESS! You saved the farm!"},
]

# User-facing text. Never show internal error names to the player.
MESSAGES = {
    "NOT_ENOUGH_MONEY": "Not enough money! You need {amount}.",
    "NO_SPACE_CROPS": "No space available! Harvest some crops first.",
    "NO_SPACE_ANIMALS": "No space available! Sell some animals first.",
    "NOT_MATURE": "This item is not ready yet. Please wait.",
    "INVALID_ITEM": "Invalid item selected.",
    "INVALID_AMOUNT": "Invalid amount.",
    "GAME_OVER": "Game is over. Cannot perform this action.",
    "SEED_NOT_FOUND": "Seed not found in inventory.",
    "CROP_NOT_ON_FARM": "Crop not found on farm.",
    "CROP_NOT_IN_INVENTORY": "Crop not found in inventory.",
    "ANIMAL_NOT_IN_INVENTORY": "Animal not found in inventory.",
    "ANIMAL_NOT_ON_FARM": "Animal not found on farm.",
    "ITEM_PURCHASED": "Purchased {name} for {price}!",
    "ITEM_SOLD": "Sold {name} for {price}!",
    "CROP_PLANTED": "{name} planted successfully!",
    "CROP_HARVESTED": "Harvested {name}!",
    "ANIMAL_PLACED": "{name} placed on farm!",
    "CROP_MATURED": "Your {name} is ready to harvest!",
    "ANIMAL_MATURED": "Your {name} is ready to sell!",
    "ANIMAL_BRED": "Your {name} gave birth to offspring!",
    "NOTHING_TO_HARVEST": "No mature crops to harvest.",
}

# Scenarios
# Standard game: 10 days of 3 real minutes each
SCENARIO_STANDARD = {
    "NAME": "Standard",
    "STARTING_MONEY": 50,
    "GOAL_MONEY": 5000,
    "TOTAL_DAYS": 10,
    "DAY_DURATION_MS": 3 * MINUTE_MS,
    "TICK_INTERVAL_MS": 1000,
    "FORECAST_DAYS": 7,
    "MAX_CROP_SLOTS": 10,
    "MAX_ANIMAL_SLOTS": 5,
    "SPEED_MULTIPLIER": 1,
}

# Testing game: days and growth run 10x faster
SCENARIO_TESTING = dict(SCENARIO_STANDARD, NAME="Testing", SPEED_MULTIPLIER=10)

SCENARIOS = {
    "standard": SCENARIO_STANDARD,
    "testing": SCENARIO_TESTING,
}


def day_duration_ms(scenario):
    """Real length of one in-game day after the speed multiplier."""
    return scenario["DAY_DURATION_MS"] / scenario.get("SPEED_MULTIPLIER", 1)


def _find(table, type_id):
    for definition in table:
        if definition["id"] == type_id:
            return definition
    return None


def get_crop_definition(type_id, table=None):
    return _find(CROPS if table is None else table, type_id)


def get_animal_definition(type_id, table=None):
    return _find(ANIMALS if table is None else table, type_id)


def crop_types(table=None):
    return [c["id"] for c in (CROPS if table is None else table)]


def animal_types(table=None):
    return [a["id"] for a in (ANIMALS if table is None else table)]
