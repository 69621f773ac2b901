#!/usr/bin/env python3
"""
TreeSync Server Script.

Mirrors a directory and serves live snapshots over WebSocket.
Requires Python 3.11+.

Usage:
    python scripts/serve.py /path/to/project [display-name] [--port 3600]
"""

import argparse
import os
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Serve a live mirror of a directory tree"
    )
    parser.add_argument(
        "path",
        type=Path,
        help="Directory to mirror",
    )
    parser.add_argument(
        "name",
        nargs="?",
        default=None,
        help="Display name of the root directory (default: last path segment)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Interface to bind",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Coalescing interval for filesystem events",
    )
    parser.add_argument(
        "--polling",
        action="store_true",
        help="Poll the filesystem instead of using native notifications",
    )

    args = parser.parse_args()

    if not args.path.is_dir():
        print(f"Error: not a directory: {args.path}", file=sys.stderr)
        sys.exit(1)

    # Settings are read from the environment on first use
    os.environ["MIRROR_ROOT_PATH"] = str(args.path)
    if args.name:
        os.environ["MIRROR_ROOT_NAME"] = args.name
    if args.interval_ms is not None:
        os.environ["WATCHER_INTERVAL_MS"] = str(args.interval_ms)
    if args.polling:
        os.environ["WATCHER_POLLING"] = "true"

    import uvicorn

    from utils.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=args.host or settings.api.host,
        port=args.port or settings.api.port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
