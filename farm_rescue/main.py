"""
Main entry point for headless Farm Rescue runs.

Plays several rounds of every strategy against the chosen scenario and
compares them, the same way a balancing pass would.
"""
import argparse
import logging

from .analytics import Analytics, SessionRecorder
from .config import SCENARIOS
from .formatting import format_money
from .session import GameSession
from .strategies import STRATEGIES, play_session

logger = logging.getLogger(__name__)


def run_scenario(scenario_config, strategy, seed=None):
    session = GameSession(scenario_config, seed=seed)
    recorder = SessionRecorder(session)
    play_session(session, strategy)
    return session, recorder


def run_rounds(scenario_config, rounds, seed=None, save_path=None):
    analytics = Analytics()
    print(f"Running {rounds} rounds of each strategy ({scenario_config['NAME']} scenario)...\n")
    for i in range(rounds):
        round_seed = None if seed is None else seed + i
        line = []
        for name, strategy in STRATEGIES.items():
            session, recorder = run_scenario(scenario_config, strategy, round_seed)
            analytics.add_result(name, session, recorder)
            line.append(f"{name}: {session.ledger.status} {format_money(session.ledger.money)}")
            if save_path and i == rounds - 1:
                session.save(f"{save_path}.{name}.json")
        print(f"Round {i + 1}/{rounds}... " + " | ".join(line))
    return analytics


def build_parser():
    parser = argparse.ArgumentParser(
        prog="farm-rescue",
        description="Run headless Farm Rescue games and compare selling strategies.")
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), default="testing",
                        help="balance preset to play (default: testing)")
    parser.add_argument("--rounds", type=int, default=5, help="games per strategy")
    parser.add_argument("--seed", type=int, default=None,
                        help="base random seed; round i uses seed + i")
    parser.add_argument("--output", default="results", help="directory for the graphs")
    parser.add_argument("--no-graphs", action="store_true", help="skip writing graphs")
    parser.add_argument("--save", metavar="PATH",
                        help="save the last game of each strategy as PATH.<strategy>.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.rounds < 1:
        logger.error("--rounds must be at least 1")
        return 2

    analytics = run_rounds(SCENARIOS[args.scenario], args.rounds, args.seed, args.save)

    # Report
    analytics.print_summary()
    if not args.no_graphs:
        analytics.generate_graphs(args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
