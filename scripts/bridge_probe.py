#!/usr/bin/env python3
"""Run the bridge against a real printer and print state changes.

Reads ``BAMBU_HOST``, ``BAMBU_PASSWORD`` (LAN access code) and
``BAMBU_SERIAL`` from the environment, connects with an in-memory store and
prints every state that changes. ``--light on|off`` writes the chamber
light control state once connected, which exercises the command path.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pybambulab import BambuConfig, BambuError, MemoryStateStore, PrinterBridge, State  # noqa: E402
from pybambulab.control import CHAMBER_LIGHT, control_path  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mirror Bambu Lab printer telemetry into an in-memory state store.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--light",
        choices=("on", "off"),
        help="Switch the chamber light once the printer is connected.",
    )
    parser.add_argument(
        "--filter",
        default="*",
        help="Only print states matching this pattern (fnmatch, default: all).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


async def _run(args: argparse.Namespace, config: BambuConfig) -> None:
    store = MemoryStateStore()
    store.subscribe_states(args.filter)
    changes = 0

    def on_change(path: str, state: State | None) -> None:
        nonlocal changes
        changes += 1
        if state is None:
            print(f"[probe] {path} deleted")
            return
        flag = "" if state.ack else " (pending)"
        print(f"[probe] {path} = {state.val!r}{flag}")

    store.on("state_change", on_change)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    started = time.monotonic()
    light_sent = args.light is None

    async with PrinterBridge(config, store) as bridge:
        while not stop.is_set():
            if args.duration > 0 and (time.monotonic() - started) >= args.duration:
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
                break
            if not light_sent and bridge.is_connected:
                store.set_state(control_path(config.serial, CHAMBER_LIGHT), args.light == "on", ack=False)
                light_sent = True
            try:
                await asyncio.wait_for(stop.wait(), timeout=1.0)
            except TimeoutError:
                pass

    print(f"[probe] {changes} state changes observed")


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = BambuConfig.from_env()
    except BambuError as exc:
        print(f"[probe] Invalid configuration: {exc}", file=sys.stderr)
        return 2

    asyncio.run(_run(args, config))
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
