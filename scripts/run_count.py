#!/usr/bin/env python3
"""
Run a PR-STV count on a ballot file, or on simulated ballots.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ballots.loader import load_ballots, load_candidates, save_ballots  # noqa: E402
from counting.exceptions import BallotValidationError  # noqa: E402
from counting.exceptions import CountConfigurationError  # noqa: E402
from counting.prstv import MAX_COUNTS, PRSTVCounter  # noqa: E402
from counting.reporting import format_count_sheet  # noqa: E402
from counting.verification import (  # noqa: E402
    CountVerifier,
    cross_check_winners,
    generate_verification_report,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Run a PR-STV count")
    parser.add_argument(
        "--candidates", required=True, help="Candidates file (.csv or .json)"
    )
    parser.add_argument("--ballots", help="Ballots file (.csv or .json)")
    parser.add_argument(
        "--voters",
        type=int,
        default=30,
        help="Number of simulated ballots when --ballots is not given (default: 30)",
    )
    parser.add_argument("--seed", type=int, help="Random seed for simulated ballots")
    parser.add_argument(
        "--seats", type=int, default=3, help="Number of seats to fill (default: 3)"
    )
    parser.add_argument(
        "--max-counts",
        type=int,
        default=MAX_COUNTS,
        help=f"Safety ceiling on counts (default: {MAX_COUNTS})",
    )
    parser.add_argument("--export", help="Export results to CSV file")
    parser.add_argument(
        "--save-ballots", help="Write the counted ballots to a .csv or .json file"
    )
    parser.add_argument(
        "--verify", action="store_true", help="Verify count invariants afterwards"
    )

    args = parser.parse_args()

    if args.ballots and not Path(args.ballots).exists():
        logger.error(f"Ballots file not found: {args.ballots}")
        sys.exit(1)

    try:
        candidates = load_candidates(args.candidates)
        counter = PRSTVCounter(
            candidates,
            total_seats=args.seats,
            max_counts=args.max_counts,
            seed=args.seed,
        )

        if args.ballots:
            ballots = load_ballots(args.ballots)
        else:
            logger.info(f"Simulating {args.voters} ballots")
            ballots = counter.generate_random_ballots(args.voters)

        logger.info(f"=== PR-STV Count ({args.seats} seats) ===")
        result = counter.run_full_count(ballots)

        print()
        print(format_count_sheet(result))

        if args.verify:
            print()
            print(
                generate_verification_report(
                    CountVerifier(counter).verify(),
                    cross_check_winners(counter, ballots),
                )
            )

        if args.save_ballots:
            save_ballots(ballots, args.save_ballots)

        if args.export:
            export_path = Path(args.export)

            counter.get_final_results().to_csv(
                export_path.with_suffix(".csv"), index=False
            )
            print(f"\nFinal results exported to: {export_path.with_suffix('.csv')}")

            rounds_path = export_path.with_stem(export_path.stem + "_counts").with_suffix(
                ".csv"
            )
            counter.get_round_summary().to_csv(rounds_path, index=False)
            print(f"Count summary exported to: {rounds_path}")

    except (CountConfigurationError, BallotValidationError) as e:
        logger.error(f"Cannot run count: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
