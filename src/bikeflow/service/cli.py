"""Compute windowed station traffic from trip and station files."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from bikeflow.core.errors import InvalidArgument
from bikeflow.core.minute_clock import NO_FILTER, format_minute, validate_center_minute
from bikeflow.service.traffic_service import TrafficQueryService, TrafficSnapshot
from bikeflow.sources.config import TrafficConfig
from bikeflow.sources.loaders import count_trip_rows, iter_trip_rows, load_station_rows

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--stations", required=True, help="Station CSV or JSON feed.")
    parser.add_argument("--trips", required=True, help="Trip CSV (optionally .csv.gz).")
    parser.add_argument(
        "--config",
        required=False,
        default=None,
        help="Optional YAML file with field aliases and window settings.",
    )
    parser.add_argument(
        "--minute",
        type=int,
        default=NO_FILTER,
        help=(
            "Minute of day (0-1439) to center the time-of-day window on. "
            "The default of -1 counts every trip regardless of time."
        ),
    )
    parser.add_argument(
        "--output-csv",
        required=False,
        default="output/station_traffic.csv",
        help="Destination CSV for annotated stations.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    try:
        center = validate_center_minute(args.minute)
    except InvalidArgument as exc:
        raise SystemExit(str(exc)) from exc

    config = TrafficConfig.from_yaml(args.config) if args.config else TrafficConfig()
    try:
        station_rows = load_station_rows(args.stations)
        service = _build_service_with_progress(station_rows, args.trips, config)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc

    snapshot = service.query(center)
    _write_snapshot_csv(args.output_csv, snapshot)
    logger.info(
        "Wrote traffic for %d stations (window %s) to %s",
        len(snapshot.stations),
        format_minute(center),
        args.output_csv,
    )


def _write_snapshot_csv(path: str | Path, snapshot: TrafficSnapshot) -> None:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    snapshot.to_dataframe().to_csv(output_path, index=False)


def _build_service_with_progress(
    station_rows: Sequence[Mapping[str, object]],
    trips_path: str,
    config: TrafficConfig,
) -> TrafficQueryService:
    """Bulk-load trips while displaying a progress bar."""

    total = count_trip_rows(trips_path)
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        transient=True,
    )

    with progress:
        task_id = progress.add_task("Bucketing trips", total=total)

        def iter_with_progress() -> Iterable[Mapping[str, object]]:
            for row in iter_trip_rows(trips_path):
                yield row
                progress.advance(task_id)

        return TrafficQueryService.from_records(station_rows, iter_with_progress(), config=config)


if __name__ == "__main__":
    main()
