"""Demonstration driver for the progressview dashboard.

Walks a directory tree, logging every file to the scrolling region while the
progress bar tracks the walk and the statistics panel shows live disk and
system metrics from psutil. The file count is computed in the background, so
the bar starts out in its indeterminate "calculating..." animation.

Usage:
    uv run progressview-demo
    uv run progressview-demo --path /usr/share --interval 0.01 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
import time
from collections.abc import Iterator
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import psutil

from progressview.config import (
    ConfigError,
    DashboardConfig,
    ProgressType,
    _deep_merge,
    dump_default_config,
    load_config,
)
from progressview.dashboard import Dashboard
from progressview.layout import GeometryError

logger = logging.getLogger("progressview.demo")

# ── Previous I/O counters (for rate computation) ───────────────────────────

_prev_read_count: int = 0
_prev_write_count: int = 0
_prev_time: float = 0.0
_has_prev: bool = False


# ── Data types ─────────────────────────────────────────────────────────────


@dataclass
class IoSnapshot:
    """Disk and system figures for one dashboard tick."""

    read_count: int = 0
    write_count: int = 0
    read_rate: float = 0.0
    write_rate: float = 0.0
    cpu_percent: float = 0.0
    mem_percent: float = 0.0

    def as_values(self) -> list[list[float | None]]:
        """Values in the order of the default statistics layout."""
        return [
            [self.read_count, self.read_rate],
            [self.write_count, self.write_rate],
            [self.cpu_percent],
            [self.mem_percent],
        ]


# ── Data collection ────────────────────────────────────────────────────────


def collect_io_stats() -> IoSnapshot:
    """Gather every figure the panel shows in one pass."""
    global _prev_read_count, _prev_write_count, _prev_time, _has_prev

    data = IoSnapshot()
    now = time.monotonic()

    disk_io = psutil.disk_io_counters()
    if disk_io is not None:
        data.read_count = disk_io.read_count
        data.write_count = disk_io.write_count
        if _has_prev and now > _prev_time:
            dt = now - _prev_time
            data.read_rate = max(0.0, (disk_io.read_count - _prev_read_count) / dt)
            data.write_rate = max(0.0, (disk_io.write_count - _prev_write_count) / dt)
        _prev_read_count = disk_io.read_count
        _prev_write_count = disk_io.write_count
        _prev_time = now
        _has_prev = True

    data.cpu_percent = psutil.cpu_percent(interval=None)
    data.mem_percent = psutil.virtual_memory().percent
    return data


def iter_files(root: Path) -> Iterator[Path]:
    for dirpath, _dirnames, filenames in os.walk(root):
        for name in sorted(filenames):
            yield Path(dirpath) / name


def count_files(root: Path) -> int:
    return sum(len(filenames) for _, _, filenames in os.walk(root))


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def _count_in_background(root: Path) -> Future[float]:
    """Count files under *root* on a daemon thread that never blocks exit."""
    future: Future[float] = Future()

    def _count() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(count_files(root))
        except Exception as e:
            future.set_exception(e)

    threading.Thread(target=_count, name="count-files", daemon=True).start()
    return future


# ── Main loop ──────────────────────────────────────────────────────────────


def run(dash: Dashboard, root: Path, interval: float) -> int:
    """Walk *root* under *dash*; returns the number of files visited."""
    assert dash.config is not None and dash.progress is not None
    percent = dash.config.progress_type is ProgressType.PERCENTAGE

    # Warm up psutil's internal CPU delta
    psutil.cpu_percent(interval=None)

    pending = _count_in_background(root)
    dash.set_progress_max(pending)
    # The bar leaves its pending state only once the settle callback has run.
    while dash.active and dash.progress.pending is pending:
        dash.update_statistics(collect_io_stats().as_values())
        time.sleep(0.05)
    try:
        total = int(pending.result())
    except OSError as e:
        logger.error("could not count files under %s: %s", root, e)
        total = 0

    done = 0
    for path in iter_files(root):
        done += 1
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        logger.info("%s (%s)", path, fmt_bytes(size))
        if percent:
            dash.update_progress(done / total * 100 if total else 100)
        else:
            dash.update_progress(done)
        dash.update_statistics(collect_io_stats().as_values())
        time.sleep(interval)
    dash.update_progress(100 if percent else total)
    return done


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Walk a directory under a live progress bar and statistics panel.",
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=Path("."),
        help="Directory to walk (default: current directory)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.02,
        help="Seconds to pause after each file (default: 0.02)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--percent",
        action="store_true",
        help="Show progress as a percentage instead of a file count",
    )
    parser.add_argument(
        "--linger",
        type=float,
        default=1.5,
        help="Seconds to keep the finished dashboard on screen (default: 1.5)",
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep the dashboard output instead of restoring the previous screen",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    logging.basicConfig(
        stream=sys.stdout,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(message)s",
    )

    raw: dict[str, Any] = load_config(args.config)
    if args.percent:
        raw = _deep_merge(raw, {"progress": {"type": "PERCENTAGE"}})
    try:
        config = DashboardConfig.from_mapping(raw)
    except ConfigError as e:
        print(f"progressview: invalid configuration: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    dash = Dashboard()
    try:
        dash.init(config)
    except GeometryError as e:
        print(f"progressview: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    def _terminate(signum: int, frame: Any) -> None:
        dash.reset()
        print("progressview: terminated.", file=sys.stderr)
        raise SystemExit(1)

    signal.signal(signal.SIGTERM, _terminate)

    try:
        files = run(dash, args.path, args.interval)
        time.sleep(args.linger)
    except KeyboardInterrupt:
        dash.reset()
        print("\nprogressview: stopped.", file=sys.stderr)
        raise SystemExit(1)
    finally:
        dash.reset(keep_output=args.keep)
    print(f"progressview: walked {files} files under {args.path}")


if __name__ == "__main__":
    main()
