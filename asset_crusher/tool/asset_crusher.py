"""Command line tool for building and watching asset-crusher artifacts."""

import argparse
import asyncio
import logging
import sys
import traceback

from asset_crusher.exceptions import CrusherException
from asset_crusher.task import task_service_context
from . import build, links, watch

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for crushing scripts, stylesheets and sprites.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    build.BuildAction.register(subparsers)
    watch.WatchAction.register(subparsers)
    links.LinksAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """asset-crusher command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        with task_service_context():
            asyncio.run(action.run(**vars(args)))
    except CrusherException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("asset-crusher error: ", err, file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        _LOGGER.debug("Interrupted")


if __name__ == "__main__":
    main()
