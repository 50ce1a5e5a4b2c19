from __future__ import annotations
import argparse
import json
import logging
import os
import shlex
import sys
from typing import List, Optional

from .models import ProgressEvent
from .progress import ProgressEstimator
from .scanner import DEFAULT_SCAN_TIMEOUT, DU_EXECUTABLE, ScanRunner
from .usage import DiskUsageService
from .utils import format_bytes, shorten_middle

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="duatlas", description="Show sizes of a directory's immediate children")
    parser.add_argument("path", nargs="?", default=".", help="Directory to inspect (default: current directory)")
    parser.add_argument("--json", action="store_true", help="Print the directory node as JSON")
    parser.add_argument("--dirs-only", action="store_true", help="Scan directories only (faster on huge trees)")
    parser.add_argument("--timeout", type=float, default=DEFAULT_SCAN_TIMEOUT,
                        help=f"Kill the scan after this many seconds (default: {DEFAULT_SCAN_TIMEOUT:g})")
    parser.add_argument("--du", default=" ".join(DU_EXECUTABLE), help="Scan tool command (default: du)")
    parser.add_argument("--no-progress", action="store_true", help="Do not print progress to stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(message)s")

    if args.timeout <= 0:
        print("--timeout must be positive", file=sys.stderr)
        return 2
    executable = shlex.split(args.du)
    if not executable:
        print("--du must name a command", file=sys.stderr)
        return 2
    if not os.path.exists(args.path):
        print(f"Path does not exist: {args.path}", file=sys.stderr)
        return 2

    service = DiskUsageService(runner=ScanRunner(executable=executable, timeout=args.timeout),
                               include_files=not args.dirs_only)
    estimator = ProgressEstimator()

    def on_progress(ev: ProgressEvent):
        pct = estimator.update(ev)
        if ev.is_complete:
            print("", file=sys.stderr)
        else:
            print(f"\r{pct:5.1f}% {ev.processed_files} entries {shorten_middle(ev.current_path, 70, 30)}",
                  end="", file=sys.stderr, flush=True)

    estimator.start()
    node = service.get_disk_usage(args.path, on_progress=None if args.no_progress else on_progress)

    if args.json:
        print(json.dumps(node.to_dict(), indent=2, ensure_ascii=False))
        return 0

    for child in sorted(node.children, key=lambda c: c.size, reverse=True):
        suffix = os.sep if child.is_dir else ""
        print(f"{format_bytes(child.size):>12}  {child.name}{suffix}")
    print(f"{format_bytes(node.size):>12}  total ({node.path})")
    return 0
