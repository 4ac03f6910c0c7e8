#!/usr/bin/env python3
"""Regenerate README sections from an existing stats snapshot (no API calls).
Usage:
  python render_readme.py                       # stats.json -> README.md
  python render_readme.py stats.json README.md

Creates the default README if missing. Idempotent.
"""
from __future__ import annotations
import sys, pathlib

import update_stats

def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    stats_path = pathlib.Path(args[0] if args else update_stats.STATS_PATH)
    readme_path = pathlib.Path(args[1] if len(args) > 1 else update_stats.README_PATH)
    if not stats_path.exists():
        print(f'{stats_path} not found; run update_stats.py first', file=sys.stderr)
        return 1
    stats = update_stats.load_stats(str(stats_path))
    update_stats.update_readme(stats, str(readme_path), update_stats.SHOW_BADGES)
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
