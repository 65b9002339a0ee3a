import json
import random
import unittest

from farm_rescue import events
from farm_rescue.config import ANIMALS, MINUTE_MS, SCENARIO_STANDARD
from farm_rescue.entities import Animal, Crop
from farm_rescue.errors import (
    GameOverError, InsufficientFundsError, InvalidAmountError, LedgerError,
    NoCapacityError, NotFoundError, NotMatureError,
)
from farm_rescue.events import EventBus
from farm_rescue.ledger import LOST, PLAYING, WON, FarmLedger
from farm_rescue.weather import Weather


class LedgerTestCase(unittest.TestCase):
    config = SCENARIO_STANDARD

    def setUp(self):
        self.time = 0
        self.bus = EventBus(clock=lambda: self.time)
        self.events = []
        self.bus.subscribe_all(self.events.append)
        self.ledger = FarmLedger(self.config, self.bus, lambda: self.time, random.Random(3))

    def emitted(self, name):
        return [e for e in self.events if e.name == name]


class TestMoney(LedgerTestCase):
    def test_starting_state(self):
        self.assertEqual(self.ledger.money, 50)
        self.assertEqual(self.ledger.day, 1)
        self.assertEqual(self.ledger.status, PLAYING)
        self.assertEqual(self.ledger.days_remaining(), 10)
        self.assertEqual(len(self.ledger.forecast), 7)

    def test_balance_matches_earned_minus_spent(self):
        ledger = self.ledger
        for amount in (30, 12, 7):
            ledger.credit(amount, "sale")
        ledger.debit(40, "seeds")
        ledger.debit(9, "seeds")
        stats = ledger.statistics
        self.assertEqual(ledger.money, 50 + stats.total_money_earned - stats.total_money_spent)
        self.assertEqual(ledger.money, 50)
        self.assertEqual(stats.best_single_sale, 30)
        self.assertEqual(len(self.emitted(events.MONEY_CHANGED)), 5)

    def test_overdraft_is_refused_without_change(self):
        with self.assertRaises(InsufficientFundsError) as ctx:
            self.ledger.debit(100, "cow")
        self.assertEqual(ctx.exception.message, "Not enough money! You need $100.")
        self.assertEqual(self.ledger.money, 50)
        self.assertEqual(self.ledger.statistics.total_money_spent, 0)
        self.assertEqual(self.emitted(events.MONEY_CHANGED), [])

    def test_invalid_amounts(self):
        for bad in (-5, float("nan"), float("inf"), "10", True, None):
            with self.assertRaises(InvalidAmountError):
                self.ledger.credit(bad)
            with self.assertRaises(InvalidAmountError):
                self.ledger.debit(bad)
        self.assertEqual(self.ledger.money, 50)

    def test_can_afford(self):
        self.assertTrue(self.ledger.can_afford(50))
        self.assertFalse(self.ledger.can_afford(51))
        self.assertFalse(self.ledger.can_afford(float("nan")))

    def test_milestones_fire_once_in_order(self):
        self.ledger.credit(1300)
        reached = [e.payload["milestone"]["amount"] for e in self.emitted(events.MILESTONE_REACHED)]
        self.assertEqual(reached, [100, 1250])
        self.ledger.debit(1300)
        self.ledger.credit(1300)
        self.assertEqual(len(self.emitted(events.MILESTONE_REACHED)), 2)
        self.assertEqual(self.ledger.milestones_reached, [100, 1250])

    def test_reaching_the_goal_wins(self):
        self.ledger.credit(4950)
        self.assertEqual(self.ledger.status, WON)
        self.assertEqual(len(self.emitted(events.GAME_WON)), 1)
        self.assertEqual(self.emitted(events.GAME_WON)[0].payload["final_money"], 5000)
        self.assertEqual(self.ledger.progress(), 100.0)


class TestTerminalStatus(LedgerTestCase):
    def test_won_game_refuses_everything(self):
        crop = self.ledger.new_crop("wheat")
        self.ledger.credit(5000)
        snapshot = json.dumps(self.ledger.snapshot(), sort_keys=True)

        for action in (lambda: self.ledger.credit(10),
                       lambda: self.ledger.debit(10),
                       lambda: self.ledger.add_to_seed_stock(crop, 10),
                       lambda: self.ledger.plant(crop.id)):
            with self.assertRaises(GameOverError):
                action()
        self.assertFalse(self.ledger.advance_day())
        self.assertEqual(json.dumps(self.ledger.snapshot(), sort_keys=True), snapshot)
        self.assertEqual(self.ledger.status, WON)

    def test_running_out_of_days_loses(self):
        for _ in range(9):
            self.assertTrue(self.ledger.advance_day())
        self.assertTrue(self.ledger.is_last_day())
        self.assertEqual(self.ledger.days_remaining(), 1)
        self.assertEqual(self.ledger.status, PLAYING)

        self.ledger.advance_day()
        self.assertEqual(self.ledger.day, 11)
        self.assertEqual(self.ledger.status, LOST)
        self.assertEqual(self.emitted(events.GAME_LOST)[0].payload["shortfall"], 4950)
        with self.assertLogs("farm_rescue.ledger", "WARNING"):
            self.assertFalse(self.ledger.advance_day())
        self.assertEqual(self.ledger.day, 11)


class TestLostGame(LedgerTestCase):
    config = dict(SCENARIO_STANDARD, STARTING_MONEY=1000)

    def test_lost_game_refuses_every_mutation(self):
        ledger = self.ledger
        seed = ledger.add_to_seed_stock(ledger.new_crop("wheat"), 10)
        ripe = ledger.add_to_seed_stock(ledger.new_crop("wheat"), 10)
        picked = ledger.add_to_seed_stock(ledger.new_crop("wheat"), 10)
        young = ledger.add_to_young_stock(ledger.new_animal("chicken"), 40)
        adult = ledger.add_to_young_stock(ledger.new_animal("chicken"), 40)
        ledger.plant(ripe.id)
        ledger.plant(picked.id)
        ledger.place(adult.id)
        self.time = 3 * MINUTE_MS
        ledger.harvest(picked.id)
        self.assertTrue(ripe.is_mature(self.time))
        self.assertTrue(adult.is_mature(self.time))

        for _ in range(10):
            ledger.advance_day()
        self.assertEqual(ledger.status, LOST)
        snapshot = json.dumps(ledger.snapshot(), sort_keys=True)

        newborn = Animal("chicken", is_purchased=False)
        newborn.place(self.time)
        for action in (lambda: ledger.credit(10),
                       lambda: ledger.debit(10),
                       lambda: ledger.add_to_seed_stock(ledger.new_crop("wheat"), 10),
                       lambda: ledger.add_to_young_stock(ledger.new_animal("chicken"), 40),
                       lambda: ledger.plant(seed.id),
                       lambda: ledger.harvest(ripe.id),
                       lambda: ledger.place(young.id),
                       lambda: ledger.sell_crop(picked.id, 18),
                       lambda: ledger.sell_animal(adult.id, 75),
                       lambda: ledger.add_offspring(newborn)):
            with self.assertRaises(GameOverError):
                action()
        with self.assertLogs("farm_rescue.ledger", "WARNING"):
            self.assertFalse(ledger.advance_day())

        self.assertEqual(json.dumps(ledger.snapshot(), sort_keys=True), snapshot)
        self.assertEqual(ledger.status, LOST)
        self.assertEqual(ledger.seeds(), [seed])
        self.assertEqual(ledger.harvested_crops(), [picked])
        self.assertEqual(ledger.young_animals(), [young])
        self.assertEqual(ledger.animals_on_farm(), [adult])


class TestRestoreDrawsNothing(LedgerTestCase):
    def test_restore_keeps_the_rng_untouched(self):
        data = json.loads(json.dumps(self.ledger.snapshot()))
        rng = random.Random(21)
        state = rng.getstate()
        restored = FarmLedger.restore(data, self.config, EventBus(), lambda: 0, rng)
        self.assertEqual(rng.getstate(), state)
        self.assertIs(restored.rng, rng)
        self.assertEqual([w.value for w in restored.forecast],
                         [w.value for w in self.ledger.forecast])


class TestForecastWindow(LedgerTestCase):
    def test_window_follows_the_calendar(self):
        for _ in range(9):
            before = {w.day: w.value for w in self.ledger.forecast}
            self.ledger.advance_day()
            forecast = self.ledger.forecast
            self.assertEqual(len(forecast), 7)
            self.assertEqual(forecast[0].day, self.ledger.day)
            self.assertEqual([w.day for w in forecast],
                             list(range(self.ledger.day, self.ledger.day + 7)))
            for weather in forecast:
                if weather.day in before:
                    self.assertEqual(weather.value, before[weather.day])

    def test_demand_follows_current_weather(self):
        self.ledger.forecast[0] = Weather.create(1, 0.25)
        self.assertEqual(self.ledger.current_demand_index(), 2.0)
        self.ledger.forecast = []
        self.assertEqual(self.ledger.current_demand_index(), 1.0)


class TestInventory(LedgerTestCase):
    config = dict(SCENARIO_STANDARD, STARTING_MONEY=1000, MAX_CROP_SLOTS=2, MAX_ANIMAL_SLOTS=1,
                  ANIMALS=[dict(a, breeding_chance=1.0, offspring_survival_rate=1.0)
                           for a in ANIMALS])

    def buy_seed(self, type_id="wheat"):
        crop = self.ledger.new_crop(type_id)
        return self.ledger.add_to_seed_stock(crop, crop.seed_cost)

    def test_purchase_debits_and_stores(self):
        crop = self.buy_seed()
        self.assertEqual(self.ledger.money, 990)
        self.assertEqual(self.ledger.seeds(), [crop])
        self.assertEqual(self.ledger.statistics.total_crops_purchased, 1)

    def test_purchase_is_all_or_nothing(self):
        crop = self.ledger.new_crop("watermelon")
        with self.assertRaises(InsufficientFundsError):
            self.ledger.add_to_seed_stock(crop, 5000)
        self.assertEqual(self.ledger.seeds(), [])
        self.assertEqual(self.ledger.money, 1000)
        self.assertEqual(self.ledger.statistics.total_crops_purchased, 0)

    def test_only_unplanted_crops_enter_seed_stock(self):
        crop = self.ledger.new_crop("wheat")
        crop.plant(0)
        with self.assertRaises(LedgerError):
            self.ledger.add_to_seed_stock(crop)

    def test_plant_respects_capacity(self):
        seeds = [self.buy_seed() for _ in range(3)]
        self.ledger.plant(seeds[0].id)
        self.ledger.plant(seeds[1].id)
        with self.assertRaises(NoCapacityError):
            self.ledger.plant(seeds[2].id)
        self.assertEqual(self.ledger.seeds(), [seeds[2]])
        self.assertEqual(seeds[2].status, Crop.SEED)
        self.assertEqual(self.ledger.available_crop_slots(), 0)

    def test_harvest_and_sell(self):
        crop = self.buy_seed()
        self.time = 5000
        self.ledger.plant(crop.id)
        with self.assertRaises(NotMatureError):
            self.ledger.harvest(crop.id)

        self.time = 5000 + 2 * MINUTE_MS
        self.ledger.harvest(crop.id)
        self.assertEqual(self.ledger.harvested_crops(), [crop])
        self.assertEqual(crop.harvest_time, self.time)
        # harvesting frees the plot
        self.assertEqual(self.ledger.available_crop_slots(), 2)

        self.ledger.sell_crop(crop.id, 18)
        self.assertEqual(self.ledger.money, 1008)
        self.assertEqual(self.ledger.harvested_crops(), [])
        self.assertEqual(self.ledger.statistics.total_crops_sold, 1)
        with self.assertRaises(NotFoundError):
            self.ledger.sell_crop(crop.id, 18)

    def test_sell_animal_requires_maturity(self):
        animal = self.ledger.add_to_young_stock(self.ledger.new_animal("chicken"), 40)
        self.ledger.place(animal.id)
        with self.assertRaises(NotMatureError):
            self.ledger.sell_animal(animal.id, 75)
        self.time = 3 * MINUTE_MS
        self.ledger.sell_animal(animal.id, 75)
        self.assertEqual(self.ledger.money, 1000 - 40 + 75)
        self.assertEqual(self.ledger.animals_on_farm(), [])

    def test_offspring_ignore_the_pen_limit(self):
        parent = self.ledger.add_to_young_stock(self.ledger.new_animal("chicken"), 40)
        self.ledger.place(parent.id)
        self.assertFalse(self.ledger.has_animal_capacity())

        child = parent.attempt_breeding(90000, self.ledger.rng).offspring
        self.ledger.add_offspring(child)
        self.assertEqual(self.ledger.animals_on_farm(), [parent, child])
        self.assertEqual(self.ledger.statistics.total_offspring_born, 1)

    def test_young_offspring_is_rejected(self):
        with self.assertRaises(LedgerError):
            self.ledger.add_offspring(Animal("chicken", is_purchased=False))

    def test_restore_relinks_offspring(self):
        parent = self.ledger.add_to_young_stock(self.ledger.new_animal("chicken"), 40)
        self.ledger.place(parent.id)
        child = parent.attempt_breeding(90000, self.ledger.rng).offspring
        self.ledger.add_offspring(child)
        self.buy_seed("corn")
        self.time = 120000

        data = json.loads(json.dumps(self.ledger.snapshot()))
        self.assertEqual(data["clock_time"], 120000)
        restored = FarmLedger.restore(data, self.config, EventBus(), lambda: 120000)

        self.assertEqual(restored.money, self.ledger.money)
        self.assertEqual([w.value for w in restored.forecast],
                         [w.value for w in self.ledger.forecast])
        self.assertEqual(restored.seeds()[0].type_id, "corn")
        r_parent, r_child = restored.animals_on_farm()
        self.assertEqual((r_parent.id, r_child.id), (parent.id, child.id))
        self.assertIs(r_parent.offspring[0], r_child)
        self.assertEqual(r_child.anchor_time, 90000)
        self.assertEqual(restored.statistics, self.ledger.statistics)


if __name__ == '__main__':
    unittest.main()
