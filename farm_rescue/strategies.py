"""
Headless players used by the CLI and the multi-round analysis.

A strategy is a function taking the session. It is called between clock
steps and may issue any number of transactions.
"""
import logging

from .config import MINUTE_MS

logger = logging.getLogger(__name__)

GOOD_DEMAND = 1.2
STEPS_PER_DAY = 36


def time_left(session):
    """Game time (ms) until the last day ends."""
    sim = session.simulation
    days_after_today = max(0, session.ledger.days_remaining() - 1)
    return days_after_today * sim.day_duration + sim.day_time_remaining()


def _growth_ms(definition, session):
    return definition["growth_minutes"] * MINUTE_MS / session.ledger.speed_multiplier


def tend_farm(session):
    """Harvest what is ready and put everything bought to work."""
    tx = session.transactions
    ledger = session.ledger
    tx.harvest_all_mature()
    for animal in ledger.young_animals():
        if not tx.place_animal(animal.id):
            break
    for crop in ledger.seeds():
        if not tx.plant_crop(crop.id):
            break


def sell_everything(session):
    tx = session.transactions
    now = session.now()
    for crop in session.ledger.harvested_crops():
        tx.sell_crop(crop.id)
    for animal in session.ledger.animals_on_farm():
        if animal.is_mature(now):
            tx.sell_animal(animal.id)


def restock(session, margin=0):
    """Buy the most expensive items that still fit and can mature in time."""
    tx = session.transactions
    ledger = session.ledger
    window = time_left(session) - margin
    inventory = ledger.inventory

    while len(inventory.seeds) + len(inventory.crops) < inventory.max_crop_slots:
        options = [row for row in tx.available_seeds()
                   if row["can_afford"] and _growth_ms(row, session) < window]
        if not options:
            break
        best = max(options, key=lambda row: row["seed_cost"])
        if not tx.buy_seed(best["id"]):
            break

    while len(inventory.young_animals) + len(inventory.animals) < inventory.max_animal_slots:
        options = [row for row in tx.available_animals()
                   if row["can_afford"] and _growth_ms(row, session) < window]
        if not options:
            break
        best = max(options, key=lambda row: row["purchase_cost"])
        if not tx.buy_animal(best["id"]):
            break


def eager_strategy(session):
    """Sell the moment anything is ready, whatever the weather."""
    tend_farm(session)
    sell_everything(session)
    restock(session, margin=session.simulation.day_duration / STEPS_PER_DAY)
    tend_farm(session)


def patient_strategy(session):
    """Hold harvested goods until demand is high or the game is ending."""
    ledger = session.ledger
    tend_farm(session)
    demand = ledger.current_demand_index()
    if demand >= GOOD_DEMAND or ledger.is_last_day():
        logger.debug("Selling on day %s at %.1fx", ledger.day, demand)
        sell_everything(session)
    restock(session, margin=session.simulation.day_duration / STEPS_PER_DAY)
    tend_farm(session)


STRATEGIES = {
    "eager": eager_strategy,
    "patient": patient_strategy,
}


def play_session(session, strategy, step=None):
    """Run `strategy` against a session until the game is won or lost."""
    if step is None:
        step = session.simulation.day_duration / STEPS_PER_DAY
    if not session.simulation.is_running:
        session.start()
    while not session.is_over:
        strategy(session)
        if session.is_over or not session.simulation.is_running:
            break
        session.advance(step)
    return session.ledger.status
