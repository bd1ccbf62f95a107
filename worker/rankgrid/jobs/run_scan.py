"""CLI job that runs one grid rank scan and prints the heat map."""

import argparse
import json
import logging
from typing import List, Optional

from rankgrid.core.config import ConfigError, get_settings
from rankgrid.core.validation import ScanRequestError, validate_grid_request
from rankgrid.etl.serialize import scan_to_payload, statistics_to_dict
from rankgrid.grid.aggregate import aggregate
from rankgrid.grid.heatmap import render_text
from rankgrid.grid.scanner import estimate_duration, scan
from rankgrid.oracle import build_oracle

logger = logging.getLogger(__name__)


def run_scan_job(
    *,
    keyword: str,
    target_id: str,
    center_lat: float,
    center_lng: float,
    grid_size: int,
    radius_miles: float,
    business_name: Optional[str] = None,
    as_json: bool = False,
) -> str:
    """Validate, scan and render. Returns the text that the CLI prints."""
    grid_request = validate_grid_request(
        keyword=keyword,
        center_lat=center_lat,
        center_lng=center_lng,
        target_id=target_id,
        business_name=business_name,
        grid_size=grid_size,
        radius_miles=radius_miles,
    )
    settings = get_settings()
    oracle = build_oracle(settings)

    logger.info(
        "Scanning %dx%d grid, expected duration >= %.1fs",
        grid_request.spec.dimension,
        grid_request.spec.dimension,
        estimate_duration(grid_request.spec, settings.scan_delay_seconds),
    )
    result = scan(
        grid_request.spec,
        grid_request.keyword,
        grid_request.target_id,
        oracle,
        business_name=grid_request.business_name,
        delay=settings.scan_delay_seconds,
    )

    if as_json:
        return json.dumps(scan_to_payload(result), ensure_ascii=False, indent=2)

    display = statistics_to_dict(aggregate(result))["display"]
    lines = [
        render_text(result),
        "",
        f"average rank: {display['average_rank']}",
        f"best rank:    {display['best_rank']}",
        f"worst rank:   {display['worst_rank']}",
    ]
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan a business's local rank over a coordinate grid")
    parser.add_argument("keyword", help="Search keyword, e.g. 'coffee shop'")
    parser.add_argument("target_id", help="Google place id of the business to track")
    parser.add_argument("center_lat", type=float, help="Grid center latitude")
    parser.add_argument("center_lng", type=float, help="Grid center longitude")
    parser.add_argument("--grid-size", dest="grid_size", type=int, default=3, help="Grid dimension (3, 5 or 7)")
    parser.add_argument("--radius", dest="radius_miles", type=float, default=0.5, help="Center-to-edge radius in miles")
    parser.add_argument("--business-name", dest="business_name", help="Display name used in logs")
    parser.add_argument("--json", dest="as_json", action="store_true", help="Print the full JSON payload")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    try:
        output = run_scan_job(
            keyword=args.keyword,
            target_id=args.target_id,
            center_lat=args.center_lat,
            center_lng=args.center_lng,
            grid_size=args.grid_size,
            radius_miles=args.radius_miles,
            business_name=args.business_name,
            as_json=args.as_json,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except ScanRequestError as exc:
        logger.error("Invalid scan request: %s", exc)
        raise SystemExit(2) from exc
    except Exception as exc:  # pragma: no cover - CLI fallback
        logger.error("Grid scan failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc

    print(output)


if __name__ == "__main__":
    main()
