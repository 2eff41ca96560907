#!/usr/bin/env python3
"""
Serve the PR-STV Count Service with uvicorn.

The safety ceiling given with --max-counts is exported as PRSTV_MAX_COUNTS
so reloaded worker processes pick it up too.
"""

import argparse
import logging
import socket
import sys
from pathlib import Path

import uvicorn

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from counting.prstv import MAX_COUNTS  # noqa: E402
from web.main import set_max_counts  # noqa: E402

logger = logging.getLogger(__name__)

PORT_SEARCH_LIMIT = 10


def port_is_free(host, port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        return sock.connect_ex((host, port)) != 0


def choose_port(host, preferred):
    """First free port at or above ``preferred``, or None."""
    return next(
        (
            port
            for port in range(preferred, preferred + PORT_SEARCH_LIMIT)
            if port_is_free(host, port)
        ),
        None,
    )


def build_parser():
    parser = argparse.ArgumentParser(description="Serve the PR-STV count API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument(
        "--max-counts",
        type=int,
        help=f"Safety ceiling on counts (default: PRSTV_MAX_COUNTS or {MAX_COUNTS})",
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    parser.add_argument(
        "--auto-port",
        action="store_true",
        help=f"Try the next {PORT_SEARCH_LIMIT - 1} ports if --port is busy",
    )
    return parser


def main():
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
    )

    if args.max_counts is not None:
        try:
            set_max_counts(args.max_counts)
        except ValueError as e:
            logger.error(str(e))
            sys.exit(1)

    port = args.port
    if args.auto_port:
        port = choose_port(args.host, args.port)
        if port is None:
            logger.error(f"No free port in {args.port}-{args.port + PORT_SEARCH_LIMIT - 1}")
            sys.exit(1)
        if port != args.port:
            logger.info(f"Port {args.port} is busy, using {port}")

    logger.info(f"Serving PR-STV Count Service on http://{args.host}:{port}")
    uvicorn.run("web.main:app", host=args.host, port=port, reload=args.reload)


if __name__ == "__main__":
    main()
