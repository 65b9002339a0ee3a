import random
import unittest

from farm_rescue.weather import (
    Weather, average_demand, best_weather_for_selling, demand_index_for,
    generate_forecast, market_condition_for, roll_forecast, sample_weather_value,
    worst_weather_for_selling,
)


class TestDemandLookup(unittest.TestCase):
    def test_range_boundaries_are_inclusive(self):
        self.assertEqual(demand_index_for(0.80), 1.0)
        self.assertEqual(market_condition_for(0.80), "Balanced")
        self.assertEqual(demand_index_for(0.89), 1.0)
        self.assertEqual(demand_index_for(0.79), 1.2)
        self.assertEqual(demand_index_for(0.90), 0.9)
        self.assertEqual(demand_index_for(1.00), 0.8)
        self.assertEqual(demand_index_for(0.30), 1.7)
        self.assertEqual(demand_index_for(0.29), 2.0)
        self.assertEqual(demand_index_for(0.10), 2.0)

    def test_worse_weather_never_lowers_demand(self):
        values = [n / 100 for n in range(10, 101)]
        demands = [demand_index_for(v) for v in values]
        for better, worse in zip(demands[1:], demands[:-1]):
            self.assertGreaterEqual(worse, better)

    def test_out_of_range_values_are_clamped(self):
        self.assertEqual(demand_index_for(1.7), 0.8)
        self.assertEqual(demand_index_for(0.0), 2.0)
        self.assertEqual(demand_index_for(0.799), 1.0)

    def test_invalid_values_fall_back_to_neutral(self):
        for bad in (float("nan"), float("inf"), None, "sunny"):
            with self.assertLogs("farm_rescue.weather", "WARNING"):
                self.assertEqual(demand_index_for(bad), 1.0)
        self.assertEqual(market_condition_for(None), "Unknown")

    def test_unmatched_value_falls_back_to_neutral(self):
        rules = [{"min": 0.50, "max": 1.00, "multiplier": 0.9, "condition": "Fine"}]
        with self.assertLogs("farm_rescue.weather", "WARNING"):
            self.assertEqual(demand_index_for(0.20, rules), 1.0)
        self.assertEqual(market_condition_for(0.20, rules), "Unknown")


class TestWeather(unittest.TestCase):
    def test_samples_have_two_decimals_in_range(self):
        rng = random.Random(42)
        for _ in range(500):
            value = sample_weather_value(rng)
            self.assertTrue(0.10 <= value <= 1.00)
            self.assertEqual(value, round(value, 2))

    def test_create_derives_demand(self):
        weather = Weather.create(3, 0.45)
        self.assertEqual(weather.day, 3)
        self.assertEqual(weather.demand_index, 1.5)
        self.assertEqual(weather.market_condition, "High Shortage")
        self.assertEqual(weather.description, "Poor Weather")
        self.assertEqual(weather.sell_recommendation, "Great time to sell!")

    def test_create_rejects_bad_days(self):
        with self.assertRaises(ValueError):
            Weather.create(0, 0.5)
        with self.assertRaises(ValueError):
            Weather.create("2", 0.5)
        # days past the end of a game are still valid forecast days
        self.assertEqual(Weather.create(15, 0.5).day, 15)

    def test_weather_is_immutable(self):
        weather = Weather.create(1, 0.5)
        with self.assertRaises(AttributeError):
            weather.value = 0.9

    def test_from_dict_recomputes_demand(self):
        weather = Weather.from_dict({"day": 2, "value": 0.25, "demand_index": 99})
        self.assertEqual(weather.demand_index, 2.0)


class TestForecast(unittest.TestCase):
    def setUp(self):
        self.rng = random.Random(1)

    def test_generate_covers_consecutive_days(self):
        forecast = generate_forecast(7, start_day=3, rng=self.rng)
        self.assertEqual([w.day for w in forecast], list(range(3, 10)))
        with self.assertRaises(ValueError):
            generate_forecast(0)

    def test_same_seed_same_forecast(self):
        first = generate_forecast(7, rng=random.Random(99))
        second = generate_forecast(7, rng=random.Random(99))
        self.assertEqual([w.value for w in first], [w.value for w in second])

    def test_roll_keeps_existing_days(self):
        forecast = generate_forecast(7, rng=self.rng)
        rolled = roll_forecast(forecast, 2, 7, self.rng)
        self.assertEqual(len(rolled), 7)
        self.assertEqual([w.day for w in rolled], list(range(2, 9)))
        self.assertEqual(rolled[:6], forecast[1:])
        self.assertEqual([w.value for w in rolled[:6]], [w.value for w in forecast[1:]])

    def test_roll_after_skipping_days(self):
        forecast = generate_forecast(3, rng=self.rng)
        rolled = roll_forecast(forecast, 5, 3, self.rng)
        self.assertEqual([w.day for w in rolled], [5, 6, 7])

    def test_forecast_analysis(self):
        forecast = [Weather.create(1, 0.9), Weather.create(2, 0.2), Weather.create(3, 0.6)]
        self.assertEqual(worst_weather_for_selling(forecast).day, 2)
        self.assertEqual(best_weather_for_selling(forecast).day, 1)
        self.assertEqual(average_demand(forecast), round((0.9 + 2.0 + 1.3) / 3, 2))
        self.assertIsNone(worst_weather_for_selling([]))
        self.assertEqual(average_demand([]), 1.0)


if __name__ == '__main__':
    unittest.main()
