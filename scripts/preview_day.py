#!/usr/bin/env python3
"""
Preview ghost suggestions for a day against the live Notion calendar.

Runs a single forced refresh pass and prints where each suggestion would
land. Nothing is written back unless --accept is given.

Usage:
    export NOTION_TOKEN=secret_...
    export PLANNER_CALENDAR_DB=...
    export ANTHROPIC_API_KEY=...
    python scripts/preview_day.py                  # today
    python scripts/preview_day.py --day 2026-03-02 # another day
    python scripts/preview_day.py --accept         # commit every suggestion
"""

import argparse
import asyncio
import logging
from datetime import date

from dayplanner_core import GhostPlanner, PlannerConfig
from dayplanner_core.adapters import AnthropicSuggestionGenerator, NotionCalendarStore


async def preview(day, accept=False):
    config = PlannerConfig.from_env()
    config.validate()
    planner = GhostPlanner(
        NotionCalendarStore.from_config(config),
        AnthropicSuggestionGenerator.from_config(config),
        day=day,
        config=config,
    )

    await planner.force_refresh()
    placements = planner.current_placements()
    print(f"\n{len(placements)} suggestion(s) for {planner.day.isoformat()}:")
    for p in placements:
        emoji = f"{p.candidate.emoji} " if p.candidate.emoji else ""
        print(f"  {p.start:%H:%M}-{p.end:%H:%M}  {emoji}{p.title} [{p.energy.value}]")
        if p.candidate.reason:
            print(f"      {p.candidate.reason}")

    if accept and placements:
        accepted = await planner.accept_all()
        print(f"\nCommitted {len(accepted)} suggestion(s) to Notion.")
    await planner.stop_refresh_loop()


def main():
    parser = argparse.ArgumentParser(description="Preview ghost suggestions for a day")
    parser.add_argument("--day", type=date.fromisoformat, help="ISO date (default: today)")
    parser.add_argument("--accept", action="store_true", help="Commit every suggestion shown")
    parser.add_argument("--verbose", action="store_true", help="Log refresh pass details")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    asyncio.run(preview(args.day, accept=args.accept))


if __name__ == "__main__":
    main()
