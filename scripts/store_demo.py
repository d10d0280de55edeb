#!/usr/bin/env python3
"""Run a small signalstore scenario and print what happened.

Builds a store with a simulated loader, lets TTL and auto-refresh reloads
run for a while, navigates away and back, runs one tracked action and then
prints the recorded history.

Usage
-----
::

    python scripts/store_demo.py --ttl 0.5 --duration 2
    python scripts/store_demo.py --fail-every 3 --json -v

Options::

    --ttl SECONDS         TTL between reloads (default: 0.5)
    --auto-refresh SECS   Auto-refresh interval, 0 disables (default: 0)
    --duration SECONDS    How long to let the store run (default: 2)
    --fail-every N        Make every Nth load fail (default: never)
    --json                Output history as machine-readable JSON
    --verbose, -v         Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_src = Path(__file__).resolve().parent.parent / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from signalstore import (  # noqa: E402
    DestroyScope,
    Navigator,
    StoreBuilder,
    StoreHistory,
    StoreOperationError,
    StoreSettings,
    configure_logging,
    thaw,
)


class SimulatedApi:
    def __init__(self, fail_every: int) -> None:
        self.fail_every = fail_every
        self.loads = 0
        self.items: list[str] = ["alpha"]

    async def fetch(self) -> dict[str, Any]:
        self.loads += 1
        await asyncio.sleep(0.01)
        if self.fail_every and self.loads % self.fail_every == 0:
            raise ConnectionError(f"simulated outage on load {self.loads}")
        return {"items": list(self.items), "loads": self.loads}

    async def add(self, item: str) -> None:
        await asyncio.sleep(0.01)
        self.items.append(item)


async def run(args: argparse.Namespace) -> int:
    history = StoreHistory()
    navigator = Navigator("/items")
    api = SimulatedApi(args.fail_every)

    builder = (
        StoreBuilder()
        .with_scope_name("items")
        .with_initial_state({"items": [], "loads": 0})
        .add_dependency("api")
        .with_loader(lambda dep: dep.fetch())
        .with_ttl(args.ttl)
        .with_action("add", lambda store, dep: dep.add)
        .with_selector("count", lambda state, dep: len(state["items"]))
        .with_error_handler(lambda err, store: print(f"! {store.scope_name}: {err.message}", file=sys.stderr))
    )
    if args.auto_refresh > 0:
        builder.with_auto_refresh(args.auto_refresh)
    factory = builder.build_provider()

    with DestroyScope("demo") as scope:
        store = factory.create(api, navigation=navigator, destroy_scope=scope, history=history)
        await asyncio.sleep(args.duration / 2)

        navigator.navigate("/settings")
        await asyncio.sleep(args.duration / 4)
        navigator.navigate("/items")

        try:
            await store.actions.add("beta")
        except StoreOperationError as err:
            print(f"! add failed: {err.message}", file=sys.stderr)
        await asyncio.sleep(args.duration / 4)

        summary = {
            "status": str(store.status()),
            "state": thaw(store.state()),
            "count": store.selectors.count(),
            "loads": api.loads,
        }

    events = [event.model_dump(mode="json") for event in history.get_all_events()]
    if args.json_mode:
        print(json.dumps({"summary": summary, "history": events}, indent=2, default=str))
        return 0

    print(f"status: {summary['status']}  loads: {summary['loads']}  count: {summary['count']}")
    print(f"state:  {summary['state']}")
    print(f"\nhistory ({len(events)} events):")
    for event in events:
        print(f"  {event['timestamp']}  {event['store_scope']:<8} {event['action']:<8} {event['status']}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Exercise a signalstore store and print its history.")
    parser.add_argument("--ttl", type=float, default=0.5, help="TTL between reloads in seconds")
    parser.add_argument("--auto-refresh", type=float, default=0.0, help="Auto-refresh interval in seconds")
    parser.add_argument("--duration", type=float, default=2.0, help="How long to let the store run")
    parser.add_argument("--fail-every", type=int, default=0, help="Make every Nth load fail")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
        configure_logging(StoreSettings(log_level="DEBUG"))
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
