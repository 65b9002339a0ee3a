"""
Analytics and Visualization.
"""
import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from . import events
from .ledger import WON

SALE_COLUMNS = ["day", "time", "item_type", "type_id", "price", "profit", "demand_index"]
PURCHASE_COLUMNS = ["day", "time", "item_type", "type_id", "cost"]
BALANCE_COLUMNS = ["day", "time", "money"]


class SessionRecorder:
    """Listens to one session's bus and keeps a row per sale, purchase and day."""

    def __init__(self, session):
        self.session = session
        self._sales = []
        self._purchases = []
        self._balances = []
        bus = session.bus
        bus.subscribe(events.ITEM_SOLD, self._on_sold)
        bus.subscribe(events.ITEM_PURCHASED, self._on_purchased)
        bus.subscribe(events.DAY_ADVANCED, self._on_day)
        bus.subscribe(events.GAME_WON, self._on_game_over)
        bus.subscribe(events.GAME_LOST, self._on_game_over)

    def _on_sold(self, event):
        p = event.payload
        self._sales.append([p.get("day"), event.time, p.get("item_type"), p.get("type_id"),
                            p.get("price"), p.get("profit"), p.get("demand_index")])

    def _on_purchased(self, event):
        p = event.payload
        self._purchases.append([self.session.ledger.day, event.time, p.get("item_type"),
                                p.get("type_id"), p.get("cost")])

    def _on_day(self, event):
        # the balance at the end of the day that just finished
        self._balances.append([event.payload["day"] - 1, event.time, event.payload["money"]])

    def _on_game_over(self, event):
        self._balances.append([self.session.ledger.day, event.time, event.payload["final_money"]])

    @property
    def sales(self):
        return pd.DataFrame(self._sales, columns=SALE_COLUMNS)

    @property
    def purchases(self):
        return pd.DataFrame(self._purchases, columns=PURCHASE_COLUMNS)

    @property
    def balances(self):
        return pd.DataFrame(self._balances, columns=BALANCE_COLUMNS)

    def sales_by_type(self):
        sales = self.sales
        if sales.empty:
            return pd.DataFrame(columns=["count", "revenue", "profit"])
        grouped = sales.groupby("type_id").agg(
            count=("price", "size"), revenue=("price", "sum"), profit=("profit", "sum"))
        return grouped.sort_values("revenue", ascending=False)


class Analytics:
    def __init__(self):
        self.results = {}  # {strategy_name: [stats_dict, ...]}

    def add_result(self, strategy_name, session, recorder=None):
        ledger = session.ledger
        stats = ledger.statistics_snapshot()
        sales = recorder.sales if recorder is not None else None
        result = {
            "won": ledger.status == WON,
            "final_money": ledger.money,
            "days_played": min(ledger.day, ledger.total_days),
            "money_earned": stats["total_money_earned"],
            "money_spent": stats["total_money_spent"],
            "net_profit": stats["net_profit"],
            "best_single_sale": stats["best_single_sale"],
            "items_sold": stats["total_crops_sold"] + stats["total_animals_sold"],
            "offspring_born": stats["total_offspring_born"],
            "avg_sale_demand": (float(sales["demand_index"].mean())
                                if sales is not None and not sales.empty else 0.0),
        }
        self.results.setdefault(strategy_name, []).append(result)
        return result

    def frame(self):
        rows = []
        for name, results in self.results.items():
            for round_number, result in enumerate(results, start=1):
                rows.append(dict(result, strategy=name, round=round_number))
        return pd.DataFrame(rows)

    def aggregate(self):
        summary = {}
        for name, results in self.results.items():
            money = np.array([r["final_money"] for r in results], dtype=float)
            summary[name] = {
                "rounds": len(results),
                "win_rate": np.mean([r["won"] for r in results]) * 100,
                "avg_final_money": np.mean(money),
                "std_final_money": np.std(money),
                "avg_days": np.mean([r["days_played"] for r in results]),
                "avg_items_sold": np.mean([r["items_sold"] for r in results]),
                "avg_sale_demand": np.mean([r["avg_sale_demand"] for r in results]),
                "avg_offspring": np.mean([r["offspring_born"] for r in results]),
            }
        return summary

    def print_summary(self):
        print("\n=== SIMULATION RESULTS ===")
        for name, stats in self.aggregate().items():
            print(f"Strategy: {name} ({stats['rounds']} rounds)")
            print(f"  - Win Rate: {stats['win_rate']:.1f}%")
            print(f"  - Avg Final Money: ${stats['avg_final_money']:,.0f} "
                  f"(std {stats['std_final_money']:,.0f})")
            print(f"  - Avg Days Played: {stats['avg_days']:.1f}")
            print(f"  - Avg Items Sold: {stats['avg_items_sold']:.1f}")
            print(f"  - Avg Demand at Sale: {stats['avg_sale_demand']:.2f}x")
            print(f"  - Avg Offspring Born: {stats['avg_offspring']:.1f}")
            print("-" * 30)

    def generate_graphs(self, output_dir="results"):
        if not os.path.exists(output_dir):
            os.makedirs(output_dir)

        summary = self.aggregate()
        strategies = list(summary.keys())
        colors = ['#e74c3c', '#3498db', '#2ecc71', '#f39c12'][:len(strategies)]
        paths = []

        # 1. Final money with spread across rounds
        plt.figure(figsize=(10, 6))
        plt.bar(strategies, [summary[s]["avg_final_money"] for s in strategies],
                yerr=[summary[s]["std_final_money"] for s in strategies],
                color=colors, capsize=5)
        plt.title('Average Final Money')
        plt.ylabel('Money ($)')
        paths.append(os.path.join(output_dir, "final_money_comparison.png"))
        plt.savefig(paths[-1])
        plt.close()

        # 2. Win rate
        plt.figure(figsize=(10, 6))
        plt.bar(strategies, [summary[s]["win_rate"] for s in strategies], color=colors)
        plt.title('Win Rate')
        plt.ylabel('Games Won (%)')
        plt.ylim(0, 100)
        paths.append(os.path.join(output_dir, "win_rate_comparison.png"))
        plt.savefig(paths[-1])
        plt.close()

        # 3. Demand multiplier at time of sale
        plt.figure(figsize=(10, 6))
        plt.bar(strategies, [summary[s]["avg_sale_demand"] for s in strategies], color=colors)
        plt.axhline(1.0, color='grey', linestyle='--', linewidth=1)
        plt.title('Average Demand Multiplier at Sale')
        plt.ylabel('Demand (x)')
        paths.append(os.path.join(output_dir, "sale_demand_comparison.png"))
        plt.savefig(paths[-1])
        plt.close()

        print(f"Graphs saved to {os.path.abspath(output_dir)}")
        return paths
