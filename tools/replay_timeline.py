#!/usr/bin/env python3
"""Replay a trigger timeline through the debouncer on a virtual clock."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.clock import ManualScheduler
from debouncer.capabilities import create_dispatcher
from debouncer.config import DebounceError, DebounceType

DEFAULT_CHANNEL = "action"


@dataclass
class TimelineEntry:
    """A single trigger at ``t_ms`` on ``channel``."""

    t_ms: float
    channel: str = DEFAULT_CHANNEL
    args: List[Any] = field(default_factory=list)


@dataclass
class Forward:
    t_ms: float
    channel: str
    args: List[Any]

    def as_dict(self) -> Dict[str, Any]:
        return {"t": self.t_ms, "channel": self.channel, "args": self.args}


class TimelineError(RuntimeError):
    """Raised when a timeline file cannot be understood."""


def load_timeline(path: Path) -> List[TimelineEntry]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise TimelineError(f"Cannot read timeline {path}: {exc}") from exc
    if not isinstance(raw, list):
        raise TimelineError("Timeline must be a JSON list of entries")

    entries: List[TimelineEntry] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict) or "t" not in item:
            raise TimelineError(f"Entry {index} needs a 't' field")
        args = item.get("args", [])
        if not isinstance(args, list):
            args = [args]
        entries.append(
            TimelineEntry(
                t_ms=float(item["t"]),
                channel=str(item.get("channel", DEFAULT_CHANNEL)),
                args=args,
            )
        )
    return entries


def replay(
    entries: Iterable[TimelineEntry],
    *,
    debounce_type: str = DebounceType.LEADING_EDGE.value,
    duration_ms: float = 1000,
    channels: Optional[Sequence[str]] = None,
) -> List[Forward]:
    """Run ``entries`` through a dispatcher and return the forwarded calls."""

    ordered = sorted(entries, key=lambda entry: entry.t_ms)
    names = list(channels or dict.fromkeys(entry.channel for entry in ordered))
    if not names:
        names = [DEFAULT_CHANNEL]

    scheduler = ManualScheduler()
    forwards: List[Forward] = []

    def _recorder(channel: str):
        def _record(*args: Any) -> None:
            forwards.append(Forward(scheduler.now_ns() / 1_000_000, channel, list(args)))

        return _record

    capabilities = {name: _recorder(name) for name in names}
    wrapped = create_dispatcher(
        capabilities,
        {"propTypesToDebounce": names, "duration": duration_ms, "type": debounce_type},
        scheduler=scheduler,
    )
    try:
        for entry in ordered:
            scheduler.advance_to(entry.t_ms / 1000.0)
            wrapped[entry.channel](*entry.args)
        # Let the last window close so deferred forwards are observed.
        scheduler.advance(duration_ms / 1000.0)
    finally:
        wrapped.on_detach()
    return forwards


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--timeline",
        type=Path,
        help="JSON list of {\"t\": ms, \"channel\": name, \"args\": [...]} entries",
    )
    source.add_argument(
        "--at",
        type=float,
        action="append",
        metavar="MS",
        help=(
            "Trigger at MS (repeatable) on the first --channel, or the default"
            " channel; the time is passed as argument"
        ),
    )
    parser.add_argument(
        "--type",
        default=DebounceType.LEADING_EDGE.value,
        choices=[member.value for member in DebounceType],
    )
    parser.add_argument("--duration", type=float, default=1000.0, help="Window length in ms")
    parser.add_argument(
        "--channel",
        action="append",
        help="Channel to register (defaults to every channel in the timeline)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s:%(name)s:%(message)s")

    try:
        if args.timeline is not None:
            entries = load_timeline(args.timeline)
        else:
            channel = args.channel[0] if args.channel else DEFAULT_CHANNEL
            entries = [TimelineEntry(t_ms=t, channel=channel, args=[t]) for t in args.at]
        forwards = replay(
            entries,
            debounce_type=args.type,
            duration_ms=args.duration,
            channels=args.channel,
        )
    except (TimelineError, DebounceError, KeyError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    for forward in forwards:
        print(json.dumps(forward.as_dict()))
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution
    sys.exit(main())
