"""Command-line entry point for local recommendation runs.

    python -m venuescout.cli "Paris" --category culture --category dining
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date

from pydantic import ValidationError

from venuescout.schemas.recommendation import RecommendationRequest
from venuescout.services.recommendation_engine import RecommendationEngine, recommendation_engine
from venuescout.services.sources import places_client, reddit_client

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate venue recommendations for a destination")
    parser.add_argument("destination", help="Destination city or region")
    parser.add_argument("--category", dest="categories", action="append", default=[],
                        help="Venue category (repeatable)")
    parser.add_argument("--preference", dest="preferences", action="append", default=[],
                        help="Free-text preference such as 'food' or 'museums' (repeatable)")
    parser.add_argument("--start", dest="start_date", type=date.fromisoformat, help="Trip start date (YYYY-MM-DD)")
    parser.add_argument("--end", dest="end_date", type=date.fromisoformat, help="Trip end date (YYYY-MM-DD)")
    parser.add_argument("--budget", type=float, help="Budget per person")
    parser.add_argument("--limit", type=int, help="Print at most this many recommendations")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress to stderr")
    return parser


async def run(request: RecommendationRequest, engine: RecommendationEngine = recommendation_engine) -> dict:
    try:
        response = await engine.generate_recommendations(request)
    finally:
        await reddit_client.close()
        await places_client.close()
    return response.to_dict()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        request = RecommendationRequest(
            destination=args.destination,
            categories=args.categories,
            preferences=args.preferences,
            start_date=args.start_date,
            end_date=args.end_date,
            budget=args.budget,
        )
    except ValidationError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2

    result = asyncio.run(run(request))
    if args.limit is not None:
        result["data"] = result["data"][: args.limit]
    print(json.dumps(result, indent=2, default=str))
    return 0 if result["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
