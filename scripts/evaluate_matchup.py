"""
evaluate_matchup.py — Run the pick engine on one matchup from a JSON request.

Input is an EvaluationRequest document (teams, market lines, optional
capper profiles and injury estimate).  Output is the EvaluationOut JSON:
every factor result, the three gated heads, and the pick or PASS reason.

Usage
-----
  python scripts/evaluate_matchup.py request.json
  python scripts/evaluate_matchup.py request.json --bankroll 2500 -o out.json
  python scripts/evaluate_matchup.py request.json --dry-run   # no team stats
  cat request.json | python scripts/evaluate_matchup.py -
"""

import argparse
import logging
import sys

from pydantic import ValidationError

from capper_engine.data_bundle import BundleUnavailable
from capper_engine.pick_engine import PickEngine
from capper_engine.schemas import EvaluationOut, EvaluationRequest
from capper_engine.settings import get_settings

logger = logging.getLogger("evaluate_matchup")


def _read(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as fh:
        return fh.read()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Evaluate one NBA matchup with the weighted multi-factor engine."
    )
    parser.add_argument("request", help="Path to an EvaluationRequest JSON file ('-' for stdin).")
    parser.add_argument("--bankroll", type=float, default=None, help="Override the request/env bankroll.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Ignore team statistics and evaluate against an unavailable bundle.",
    )
    parser.add_argument("-o", "--output", default=None, help="Write JSON here instead of stdout.")
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        request = EvaluationRequest.model_validate_json(_read(args.request))
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.request, exc)
        return 2
    except ValidationError as exc:
        logger.error("Invalid evaluation request:\n%s", exc)
        return 2

    bundle = BundleUnavailable("dry run") if args.dry_run else request.to_bundle()
    bankroll = args.bankroll if args.bankroll is not None else request.bankroll

    engine = PickEngine(settings=settings, impact_provider=request.injury_provider())
    result = engine.evaluate_sync(
        request.to_context(),
        bundle,
        request.market.to_snapshot(),
        request.to_profiles(engine.catalog),
        bankroll,
    )

    payload = EvaluationOut.from_result(result).model_dump_json(indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(payload + "\n")
        logger.info("Wrote evaluation to %s", args.output)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
