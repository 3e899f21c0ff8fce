import argparse
import asyncio
import logging
import sys
from typing import List, Optional, TextIO

import structlog

from config import Settings, get_settings
from exceptions import InvalidArgumentsError, TxnFlowError
from processor import run_txn_processor


def configure_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging on stderr; stdout carries the csv."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.debug:
        level = logging.DEBUG

    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(message)s",
        force=True,
    )

    if settings.log_format == "json":
        renderers = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *renderers,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


class ArgumentParser(argparse.ArgumentParser):
    """Reports usage problems as InvalidArgumentsError on stderr."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(2, f"{self.prog}: error: {InvalidArgumentsError()} ({message})\n")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = ArgumentParser(
        prog=settings.app_name,
        description="Apply a csv stream of client transactions and print final account balances.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  txnflow transactions.csv > accounts.csv\n"
            "  TXNFLOW_LOG_LEVEL=DEBUG txnflow transactions.csv\n"
        ),
    )
    parser.add_argument(
        "path", type=str,
        help="Input csv with columns type, client, tx, amount",
    )
    parser.add_argument(
        "--version", action="version",
        version=f"%(prog)s {settings.app_version}",
    )
    return parser


def main(argv: Optional[List[str]] = None, stdout: Optional[TextIO] = None) -> int:
    settings = get_settings()
    configure_logging(settings)

    args = build_parser(settings).parse_args(argv)

    try:
        asyncio.run(run_txn_processor(args.path, stdout or sys.stdout, settings))
    except TxnFlowError as e:
        logger.error("Run aborted", path=args.path, error_code=e.code, error=str(e))
        return 1

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
