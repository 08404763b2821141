"""asset-crusher links action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
    BooleanOptionalAction,
)
import logging
import pathlib
from typing import cast

from asset_crusher.config import load_config
from asset_crusher.links import LinkRenderer
from asset_crusher.monitor import DependencyWatch

from .common import add_config_flags, create_monitor

_LOGGER = logging.getLogger(__name__)


class LinksAction:
    """asset-crusher links action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "links",
                help="Print the markup referencing a script or stylesheet group",
                description="""Print the script or link tags referencing the
                    crushed file of a group, or each of its sources in debug
                    mode.""",
            ),
        )
        add_config_flags(args)
        args.add_argument(
            "--group", type=str, required=True, help="Name of the group to link"
        )
        args.add_argument(
            "--debug",
            action=BooleanOptionalAction,
            default=None,
            help="Reference each source instead of the crushed file (default: from config)",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        config: pathlib.Path,
        group: str,
        debug: bool | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        crusher_config = await load_config(config)
        monitor = create_monitor(crusher_config)
        watch = DependencyWatch(monitor)
        try:
            renderer = LinkRenderer(crusher_config, watch)
            print(await renderer.render(group, debug=debug))
        finally:
            watch.close()
            await monitor.close()
