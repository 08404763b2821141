"""asset-crusher watch action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import asyncio
import logging
import pathlib
from typing import cast

from asset_crusher.config import load_config
from asset_crusher.task import get_task_service

from .common import add_config_flags, create_coordinator, create_monitor

_LOGGER = logging.getLogger(__name__)


class WatchAction:
    """asset-crusher watch action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "watch",
                help="Build all artifacts and rebuild them when sources change",
                description="""Build every configured group, then monitor the
                    sources and outputs and rebuild an artifact whenever one of
                    them changes. Runs until interrupted.""",
            ),
        )
        add_config_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        config: pathlib.Path,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        crusher_config = await load_config(config)
        monitor = create_monitor(crusher_config)
        coordinator = create_coordinator(crusher_config, monitor)
        try:
            for spec in crusher_config.artifact_specs():
                await coordinator.add(spec)
            monitor.start()
            _LOGGER.info("Watching %d artifacts", len(coordinator))
            await asyncio.Event().wait()
        finally:
            await coordinator.close()
            await monitor.close()
            await get_task_service().close()
