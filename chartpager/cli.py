"""Command line interface for aggregating sample files and simulating paging."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import Settings, get_settings, load_settings
from .io.samples import SyntheticSampleSource, read_samples
from .live.coordinator import ChartCoordinator
from .periods import parse_period, period_spec
from .services.aggregator import aggregate, bins_to_frame, compute_statistics
from .utils.logging import configure_logging, get_logger
from .utils.time import Calendar, now_utc, to_datetime

LOGGER = get_logger(__name__)


def cmd_aggregate(
    input_path: Path,
    period: str,
    settings: Settings,
    *,
    timezone_name: Optional[str] = None,
    output: Optional[Path] = None,
) -> Dict[str, object]:
    samples = read_samples(input_path)
    calendar = Calendar(timezone_name or settings.calendar.timezone)
    bins = aggregate(samples, period, calendar)
    stats = compute_statistics(bins)
    frame = bins_to_frame(bins)
    spec = period_spec(period)
    if bins:
        labels = [calendar.local(entry.bin_start).strftime(spec.axis_date_format) for entry in bins]
        frame.insert(0, spec.x_label, labels)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(output, index=False)
        LOGGER.info("Wrote %s bins to %s", len(frame), output.as_posix())
    else:
        print(frame.to_string(index=False))
    LOGGER.info(
        "Aggregated %s samples into %s %s bins: total=%.2f average=%.2f peak=%.2f",
        len(samples),
        len(bins),
        parse_period(period).value,
        stats.total,
        stats.average,
        stats.peak,
    )
    return {"samples": len(samples), "bins": len(bins), "statistics": stats}


async def run_simulation(
    period: str,
    scrolls: int,
    settings: Settings,
    *,
    seed: int = 0,
    anchor: Optional[str] = None,
) -> List[Dict[str, object]]:
    """Drive a coordinator against synthetic data, paging back ``scrolls`` times."""

    calendar = Calendar(settings.calendar.timezone)
    source = SyntheticSampleSource(seed=seed, calendar=calendar)
    anchor_dt = to_datetime(anchor) if anchor else now_utc()
    coordinator = ChartCoordinator(
        source,
        period=period,
        settings=settings,
        calendar=calendar,
        anchor=anchor_dt,
    )
    history: List[Dict[str, object]] = []
    try:
        coordinator.start()
        await coordinator.settle()
        history.append(_describe(coordinator))
        page_size = period_spec(coordinator.period).page_size
        for _ in range(max(0, scrolls)):
            loaded = coordinator.loaded_range
            coordinator.scroll_to(loaded.start + page_size * 0.1)
            await coordinator.settle()
            history.append(_describe(coordinator))
    finally:
        coordinator.close()
    return history


def _describe(coordinator: ChartCoordinator) -> Dict[str, object]:
    stats = coordinator.statistics
    domain = coordinator.y_domain
    summary = {
        "loaded_start": coordinator.loaded_range.start.isoformat(),
        "loaded_end": coordinator.loaded_range.end.isoformat(),
        "samples": len(coordinator.raw_samples),
        "bins": len(coordinator.all_bins),
        "visible": len(coordinator.visible_bins),
        "average": stats.average,
        "peak": stats.peak,
        "domain": (domain.lower, domain.upper),
    }
    LOGGER.info(
        "loaded=[%s, %s) samples=%s bins=%s visible=%s avg=%.1f peak=%.1f domain=%s",
        summary["loaded_start"],
        summary["loaded_end"],
        summary["samples"],
        summary["bins"],
        summary["visible"],
        stats.average,
        stats.peak,
        summary["domain"],
    )
    return summary


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Windowed time-series chart tooling")
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", dest="log_level", default=None)
    sub = parser.add_subparsers(dest="command")

    agg = sub.add_parser("aggregate")
    agg.add_argument("--input", type=Path, required=True)
    agg.add_argument("--period", default=None)
    agg.add_argument("--timezone", default=None)
    agg.add_argument("--output", type=Path, default=None)

    sim = sub.add_parser("simulate")
    sim.add_argument("--period", default=None)
    sim.add_argument("--scrolls", type=int, default=3)
    sim.add_argument("--seed", type=int, default=0)
    sim.add_argument("--anchor", default=None)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    settings = load_settings(args.config) if args.config is not None else get_settings()

    if args.command == "aggregate":
        period = args.period or settings.view.default_period.value
        cmd_aggregate(args.input, period, settings, timezone_name=args.timezone, output=args.output)
    elif args.command == "simulate":
        period = args.period or settings.view.default_period.value
        asyncio.run(run_simulation(period, args.scrolls, settings, seed=args.seed, anchor=args.anchor))
    else:
        parser.print_help()
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
