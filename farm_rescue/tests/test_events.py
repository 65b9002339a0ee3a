import unittest

from farm_rescue import events
from farm_rescue.events import EventBus


class TestEventBus(unittest.TestCase):
    def setUp(self):
        self.now = 0
        self.bus = EventBus(clock=lambda: self.now)
        self.received = []

    def test_delivery_in_subscription_order(self):
        self.bus.subscribe(events.ITEM_SOLD, lambda e: self.received.append(("first", e.payload)))
        self.bus.subscribe(events.ITEM_SOLD, lambda e: self.received.append(("second", e.payload)))
        self.now = 4200
        event = self.bus.emit(events.ITEM_SOLD, price=18)
        self.assertEqual(event.time, 4200)
        self.assertEqual(self.received, [("first", {"price": 18}), ("second", {"price": 18})])

    def test_payload_may_carry_a_name(self):
        self.bus.subscribe(events.CROP_PLANTED, self.received.append)
        event = self.bus.emit(events.CROP_PLANTED, crop_id="crop_1", name="Wheat")
        self.assertEqual(event.name, events.CROP_PLANTED)
        self.assertEqual(event.payload, {"crop_id": "crop_1", "name": "Wheat"})
        self.assertEqual(self.received, [event])
        self.assertEqual(self.bus.count(events.CROP_PLANTED), 1)

    def test_failing_handler_is_isolated(self):
        def broken(event):
            raise ValueError("handler bug")

        self.bus.subscribe(events.DAY_ADVANCED, broken)
        self.bus.subscribe(events.DAY_ADVANCED, self.received.append)
        with self.assertLogs("farm_rescue.events", "ERROR"):
            self.bus.emit(events.DAY_ADVANCED, day=2)
        self.assertEqual(len(self.received), 1)

    def test_unsubscribe(self):
        self.bus.subscribe(events.MONEY_CHANGED, self.received.append)
        self.bus.subscribe_all(self.received.append)
        self.bus.unsubscribe(events.MONEY_CHANGED, self.received.append)
        self.bus.unsubscribe(None, self.received.append)
        self.bus.emit(events.MONEY_CHANGED, money=10)
        self.assertEqual(self.received, [])

    def test_counts_and_history(self):
        for _ in range(3):
            self.bus.emit(events.TIMER_UPDATE)
        self.bus.emit(events.GAME_WON, final_money=5000)
        self.assertEqual(self.bus.count(events.TIMER_UPDATE), 3)
        self.assertEqual(self.bus.stats(), {events.TIMER_UPDATE: 3, events.GAME_WON: 1})
        self.assertEqual([e.name for e in self.bus.history], [events.GAME_WON])


if __name__ == '__main__':
    unittest.main()
