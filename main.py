#!/usr/bin/env python3
"""
CropKeeper: launch the web interface.

Usage:
    python main.py                          # http://localhost:8000
    python main.py --port 9000              # http://localhost:9000
    python main.py --host 127.0.0.1         # bind to localhost only
    python main.py --db /path/to/farm.sqlite
    python main.py --store json --json-path farm.json
    python main.py --seed                   # demo farms in an empty store
    python main.py --store json --import-local backup.json
    python main.py --reload                 # auto-reload on code changes
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import webbrowser
from pathlib import Path


def _import_local(json_path: Path, source: Path) -> None:
    """Merge a browser localStorage dump into the JSON record store."""
    from store.json_store import JsonRecordStore

    with open(source, "r", encoding="utf-8") as f:
        data = json.load(f)
    counts = JsonRecordStore(json_path).import_blobs(data)
    print(f"Imported {sum(counts.values())} records into {json_path}: {counts}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Launch the CropKeeper web interface.",
    )
    parser.add_argument(
        "--host", default="127.0.0.1",
        help="Bind address (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("APP_PORT", "8000")),
        help="Port to listen on (default: 8000 or APP_PORT env var)",
    )
    parser.add_argument(
        "--store", choices=("sqlite", "json"), default=None,
        help="Record store backend (default: sqlite or APP_STORE env var)",
    )
    parser.add_argument(
        "--db", type=Path, default=None,
        help="Path to SQLite database (default: cropkeeper.sqlite or APP_DB_PATH env var)",
    )
    parser.add_argument(
        "--json-path", type=Path, default=None,
        help="Path to the JSON store file (default: cropkeeper_local.json "
             "or APP_JSON_STORE_PATH env var)",
    )
    parser.add_argument(
        "--seed", action="store_true",
        help="Seed the demo farms, crops, tasks and expenses into an empty store",
    )
    parser.add_argument(
        "--import-local", type=Path, default=None, metavar="FILE",
        help="Merge a localStorage JSON dump into the JSON store before starting",
    )
    parser.add_argument(
        "--reload", action="store_true",
        help="Enable auto-reload on file changes (development mode)",
    )
    parser.add_argument(
        "--no-browser", action="store_true",
        help="Don't open a browser window automatically",
    )
    args = parser.parse_args()

    # CLI flags override env vars; the app reads them at import time
    if args.store is not None:
        os.environ["APP_STORE"] = args.store
    if args.db is not None:
        os.environ["APP_DB_PATH"] = str(args.db)
    if args.json_path is not None:
        os.environ["APP_JSON_STORE_PATH"] = str(args.json_path)
    if args.seed:
        os.environ["APP_SEED_DEMO"] = "1"

    from utils.config import AppConfig

    try:
        cfg = AppConfig.from_env()
    except ValueError as exc:
        parser.error(str(exc))

    if args.import_local is not None:
        if cfg.store_backend != "json":
            parser.error("--import-local requires the json store (--store json)")
        if not args.import_local.exists():
            parser.error(f"import file not found: {args.import_local}")
        _import_local(cfg.json_store_path, args.import_local)

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is not installed.")
        print("  pip install uvicorn[standard]")
        sys.exit(1)

    url = f"http://{'localhost' if args.host == '0.0.0.0' else args.host}:{args.port}"
    print(f"Starting CropKeeper at {url}")
    print(f"Store: {cfg.store_backend} ({cfg.store_path()})")
    print()

    if not args.no_browser:
        # Open browser after a short delay to let the server start
        import threading
        threading.Timer(1.5, webbrowser.open, args=(url,)).start()

    uvicorn.run(
        "api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
