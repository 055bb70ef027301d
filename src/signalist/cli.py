"""CLI entry point for Signalist."""

import argparse
import asyncio
import sys

import uvicorn

from signalist.config import get_settings
from signalist.core.exceptions import SignalistError
from signalist.core.logging import get_logger, setup_logging
from signalist.worker import worker_lifespan

logger = get_logger(__name__)


async def _run_digest_once() -> int:
    settings = get_settings()
    setup_logging(settings)

    async with worker_lifespan(settings, start_scheduler=False) as state:
        if state.orchestrator is None:
            logger.error("Digest pipeline is not configured")
            return 1
        report = await state.orchestrator.run()

    print(report.model_dump_json(indent=2))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Signalist")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the API server and digest scheduler")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload")
    serve.add_argument("--host", default="0.0.0.0", help="Bind host")
    serve.add_argument("--port", type=int, default=8000, help="Bind port")

    subparsers.add_parser("digest", help="Run one digest now and print the report")

    args = parser.parse_args()

    if args.command == "digest":
        try:
            sys.exit(asyncio.run(_run_digest_once()))
        except SignalistError as e:
            logger.error("Digest run failed", error=e.message)
            sys.exit(1)

    uvicorn.run(
        "signalist.main:app",
        host=getattr(args, "host", "0.0.0.0"),
        port=getattr(args, "port", 8000),
        reload=getattr(args, "reload", False),
    )
