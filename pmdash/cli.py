#!/usr/bin/env python3
"""
Command-line access to the calculators.

Usage examples:
    pmdash rice --reach 8 --impact 5 --confidence 80 --effort 6
    pmdash top-down --tam 1000000 --sam 20 --som 10 --period annual
    pmdash roi --input calculation.json
    cat layout.json | pmdash migrate-layout

Commands taking a JSON document read it from --input (a path, or - for
stdin). Results are written to stdout as JSON; logs go to stderr.

Exit codes: 0 success, 1 invalid input, 2 usage error (argparse).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from pmdash.config import setup_json_logging, settings
from pmdash.errors import CalculatorError
from pmdash.schemas.abtest import AnalyzeRequest, SampleSizeInputs
from pmdash.schemas.market import BottomUpRequest, MarketCalculationParams
from pmdash.schemas.roi import RoiCalculation
from pmdash.services import abtest, market_sizing, rice, roi
from pmdash.services.migrations import migrate_layout, migrate_rice_scores
from pmdash.utils.currency import format_currency

logger = logging.getLogger("pmdash.cli")


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def _add_input(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", default="-", help="JSON input file (default: stdin).")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pmdash", description="Product-manager dashboard calculators.")
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.LOG_LEVEL,
        help="Logging level (e.g. INFO, DEBUG).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("rice", help="RICE score with category and insights.")
    p.add_argument("--reach", type=float, required=True)
    p.add_argument("--impact", type=float, required=True)
    p.add_argument("--confidence", type=float, required=True, help="Percentage 0-100.")
    p.add_argument("--effort", type=float, required=True)

    p = sub.add_parser("top-down", help="Top-down TAM/SAM/SOM.")
    p.add_argument("--tam", type=float, required=True)
    p.add_argument("--sam", type=float, required=True, help="SAM as % of TAM.")
    p.add_argument("--som", type=float, required=True, help="SOM as % of SAM.")
    p.add_argument("--period", choices=["monthly", "quarterly", "annual"], default="annual")
    p.add_argument("--currency", default="USD")
    p.add_argument("--format", action="store_true", help="Also print abbreviated currency strings.")

    _add_input(sub.add_parser("bottom-up", help="Bottom-up sizing from a BottomUpRequest JSON."))
    _add_input(sub.add_parser("roi", help="ROI analysis from a RoiCalculation JSON."))

    p = sub.add_parser("monte-carlo", help="ROI uncertainty simulation from a RoiCalculation JSON.")
    _add_input(p)
    p.add_argument("--iterations", type=int, default=None)
    p.add_argument("--uncertainty", type=float, default=None, help="Fractional spread, e.g. 0.2.")
    p.add_argument("--seed", type=int, default=None)

    _add_input(sub.add_parser("analyze", help="Frequentist analysis of a finished A/B test."))
    _add_input(sub.add_parser("sample-size", help="Sample size and duration for an A/B test."))

    p = sub.add_parser("mde", help="Minimum detectable effect for a per-arm sample size.")
    p.add_argument("--sample-size", type=int, required=True)
    p.add_argument("--baseline", type=float, required=True, help="Baseline rate as a decimal (0-1).")
    p.add_argument("--alpha", type=float, default=0.05)
    p.add_argument("--power", type=float, default=0.8)
    p.add_argument("--direction", choices=["one-tailed", "two-tailed"], default="two-tailed")

    _add_input(sub.add_parser("migrate-layout", help="Upgrade a stored dashboard layout."))
    _add_input(sub.add_parser("migrate-rice", help="Upgrade stored RICE scores."))

    return parser.parse_args(argv)


def _dump(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(result, list):
        return [_dump(item) for item in result]
    return result


def _cmd_rice(args: argparse.Namespace) -> Any:
    return rice.evaluate_rice(args.reach, args.impact, args.confidence, args.effort)


def _cmd_top_down(args: argparse.Namespace) -> Any:
    params = MarketCalculationParams(currency=args.currency, time_period=args.period)
    sizes = market_sizing.calculate_top_down(args.tam, args.sam, args.som, params)
    out: Dict[str, Any] = _dump(sizes)
    if args.format:
        out["formatted"] = {
            key: format_currency(getattr(sizes, key), params.currency) for key in ("tam", "sam", "som")
        }
    return out


def _cmd_bottom_up(args: argparse.Namespace) -> Any:
    req = BottomUpRequest.model_validate(_read_json(args.input))
    return market_sizing.calculate_bottom_up(
        req.segments, req.market_params, req.competitor_count, req.market_share_target
    )


def _cmd_roi(args: argparse.Namespace) -> Any:
    return roi.calculate_roi(RoiCalculation.model_validate(_read_json(args.input)))


def _cmd_monte_carlo(args: argparse.Namespace) -> Any:
    calculation = RoiCalculation.model_validate(_read_json(args.input))
    return roi.run_monte_carlo_simulation(calculation, args.iterations, args.uncertainty, args.seed)


def _cmd_analyze(args: argparse.Namespace) -> Any:
    req = AnalyzeRequest.model_validate(_read_json(args.input))
    return abtest.calculate_frequentist(req.variations, req.config)


def _cmd_sample_size(args: argparse.Namespace) -> Any:
    return abtest.calculate_frequentist_sample_size(SampleSizeInputs.model_validate(_read_json(args.input)))


def _cmd_mde(args: argparse.Namespace) -> Any:
    mde = abtest.calculate_mde(args.sample_size, args.baseline, args.alpha, args.power, args.direction)
    return {"mde": mde, "relativeMde": mde / args.baseline * 100}


def _cmd_migrate_layout(args: argparse.Namespace) -> Any:
    return migrate_layout(_read_json(args.input))


def _cmd_migrate_rice(args: argparse.Namespace) -> Any:
    return migrate_rice_scores(_read_json(args.input))


COMMANDS: Dict[str, Callable[[argparse.Namespace], Any]] = {
    "rice": _cmd_rice,
    "top-down": _cmd_top_down,
    "bottom-up": _cmd_bottom_up,
    "roi": _cmd_roi,
    "monte-carlo": _cmd_monte_carlo,
    "analyze": _cmd_analyze,
    "sample-size": _cmd_sample_size,
    "mde": _cmd_mde,
    "migrate-layout": _cmd_migrate_layout,
    "migrate-rice": _cmd_migrate_rice,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_json_logging(log_level=getattr(logging, args.log_level.upper(), logging.INFO), stream=sys.stderr)
    logger.info("cli.start", extra={"calculator": args.command})

    try:
        result = COMMANDS[args.command](args)
    except (CalculatorError, ValidationError, json.JSONDecodeError) as e:
        logger.error("cli.invalid_input", extra={"calculator": args.command, "reason": str(e)})
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return 1
    except OSError as e:
        logger.error("cli.read_failed", extra={"calculator": args.command, "reason": str(e)})
        return 1

    json.dump(_dump(result), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
