"""asset-crusher build action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from asset_crusher.config import load_config
from asset_crusher.task import get_task_service

from .common import add_config_flags, create_coordinator, create_monitor

_LOGGER = logging.getLogger(__name__)


class BuildAction:
    """asset-crusher build action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "build",
                help="Build the artifacts of the configured groups once",
                description="""Crush the configured script and stylesheet
                    groups and compose the configured sprites, writing the
                    outputs to their configured locations.""",
            ),
        )
        add_config_flags(args)
        args.add_argument(
            "--group",
            type=str,
            action="append",
            default=None,
            help="Name of a group to build, may be repeated (default: all groups)",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        config: pathlib.Path,
        group: list[str] | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        crusher_config = await load_config(config)
        monitor = create_monitor(crusher_config)
        coordinator = create_coordinator(crusher_config, monitor)
        try:
            for spec in crusher_config.artifact_specs(group):
                entry = await coordinator.add(spec)
                if entry is None:
                    continue
                for path, etag in entry.hashes.items():
                    print(f"{path} {etag}")
        finally:
            await coordinator.close()
            await monitor.close()
            await get_task_service().close()
