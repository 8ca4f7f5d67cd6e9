#!/usr/bin/env python
"""Render two aircraft flight trails to an interactive HTML animation.

Loads the configured trajectory sources, aligns them with the configured
offsets and samples the looping clock into a Plotly animation.

Configuration comes from an optional JSON file, then ``SKYTRAIL_*``
environment variables (see ``SessionConfig.from_env``).

Usage:
    uv run python scripts/render_flights.py -o outputs/flights.html
    uv run python scripts/render_flights.py --config session.json --frames 600 --stride 20
"""

import argparse
import logging
import sys
from pathlib import Path

from skytrail import AnimationSession, SessionConfig, SkytrailError

logger = logging.getLogger("skytrail.scripts.render_flights")


def build_config(config_path: Path | None) -> SessionConfig:
    """Read the JSON config (if any) and apply environment overrides."""
    base = SessionConfig.from_json(config_path.read_text()) if config_path else SessionConfig()
    return SessionConfig.from_env(base=base)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Render animated flight trails to HTML.")
    p.add_argument("--config", type=Path, help="Session configuration JSON.")
    p.add_argument("-o", "--out", type=Path, default=Path("outputs/flights.html"))
    p.add_argument("--frames", type=int, default=400, help="Animation frames.")
    p.add_argument("--stride", type=int, default=20, help="Clock ticks per frame.")
    p.add_argument("--start", type=float, default=None, help="Virtual start time [ticks].")
    p.add_argument("-v", "--verbose", action="store_true")
    ns = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(ns.config)
        session = AnimationSession.load(config)
    except SkytrailError as err:
        logger.error("%s", err)
        return 1

    first, last = session.time_span
    logger.info("Timeline covers [%.0f, %.0f] of a %.0f-tick loop", first, last, config.loop_length)

    fig = session.to_figure(n_frames=ns.frames, ticks_per_frame=ns.stride, start_time=ns.start)
    ns.out.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(ns.out)
    logger.info("Wrote %s", ns.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
