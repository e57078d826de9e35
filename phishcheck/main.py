"""Command-line entry point for PhishCheck."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Optional

from .analyzer.engine import PhishingAnalyzer
from .analyzer.ml import build_scorer
from .analyzer.models import AnalysisInput
from .config import Config, load_config, validate_config
from .server import AnalysisServer

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phishcheck",
        description="Score a URL or message for phishing risk.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Analyze a single URL or message")
    target = check.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", help="URL to analyze")
    target.add_argument("--message", help="Free text that may contain a URL")
    check.add_argument(
        "--pattern",
        action="append",
        default=[],
        help="Extra case-insensitive regex to flag (repeatable)",
    )
    check.add_argument("--threshold", type=float, help="Override the phishing score threshold")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default: API_HOST)")
    serve.add_argument("--port", type=int, help="Bind port (default: API_PORT)")

    return parser


async def run_check(analyzer: PhishingAnalyzer, args: argparse.Namespace) -> int:
    overrides: dict[str, object] = {}
    if args.pattern:
        overrides["custom_patterns"] = list(analyzer.config.custom_patterns) + list(args.pattern)
    if args.threshold is not None:
        overrides["thresholds"] = {"phishing_score": args.threshold}

    result = await analyzer.analyze(
        AnalysisInput(url=args.url, message=args.message),
        overrides=overrides or None,
    )
    print(json.dumps(result.to_dict(), indent=2))
    return 0


async def run_server(analyzer: PhishingAnalyzer, host: str, port: int) -> int:
    server = AnalysisServer(analyzer, host=host, port=port)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    await server.start()
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down PhishCheck API")
        await server.stop()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config: Config = load_config()
    setup_logging(config.log_level)

    errors = validate_config(config)
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    scorer = build_scorer(config.model_path or None)
    analyzer = PhishingAnalyzer.from_config(config, scorer=scorer)

    if args.command == "check":
        return asyncio.run(run_check(analyzer, args))

    host = args.host or config.api_host
    port = args.port or config.api_port
    return asyncio.run(run_server(analyzer, host, port))


if __name__ == "__main__":
    sys.exit(main())
