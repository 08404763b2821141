"""Reference markup for crushed scripts and stylesheets.

Pages reference a group either through its crushed file (bundled) or, while
debugging, through each of its sources. Every url carries the content hash
as a query parameter so browsers pick up a new version as soon as the file
changes. Rendered markup is cached per output path until the watch over the
referenced files fires.
"""

import logging
from typing import Any

from . import fileio
from .config import CrusherConfig, GroupConfig, SpriteGroupConfig
from .config import StylesheetGroupConfig
from .exceptions import ConfigurationError
from .monitor import DependencyWatch, MonitorReason

_LOGGER = logging.getLogger(__name__)

KEY_PREFIX = "links"

SCRIPT_TEMPLATE = '<script type="text/javascript" src="{url}"></script>'
STYLESHEET_TEMPLATE = (
    '<link rel="stylesheet" type="text/css" href="{url}" media="{media}" />'
)

LESS_SUFFIXES = (".less", ".less.css")


class LinkRenderer:
    """Renders and caches the references to a group."""

    def __init__(self, config: CrusherConfig, watch: DependencyWatch) -> None:
        """Initialize LinkRenderer."""
        self._config = config
        self._watch = watch
        self._cache: dict[str, tuple[bool, str]] = {}

    def _tag(self, group: GroupConfig, url: str) -> str:
        if isinstance(group, StylesheetGroupConfig):
            return STYLESHEET_TEMPLATE.format(url=url, media=group.media)
        return SCRIPT_TEMPLATE.format(url=url)

    async def render(self, group_name: str, debug: bool | None = None) -> str:
        """Return the markup referencing the group.

        Debug mode follows the group configuration unless `debug` is set.

        Raises:
            ConfigurationError: If the group does not exist or can not be linked.
            IoError: If a referenced file can not be read.
        """
        group = self._config.get_group(group_name)
        if isinstance(group, SpriteGroupConfig):
            raise ConfigurationError(f"Sprite group '{group_name}' can not be linked")
        if debug is None:
            debug = group.debug

        output = self._config.resolve(group.output)
        key = f"{KEY_PREFIX}|{output}"
        if (cached := self._cache.get(key)) is not None and cached[0] == debug:
            return cached[1]

        paths = {output}
        if debug:
            paths.update(self._config.resolve(file.path) for file in group.files)
        baseline = self._watch.snapshot(paths)

        query_key = self._config.query_key
        if debug:
            links = []
            for file in group.files:
                source = self._config.resolve(file.path)
                etag = await fileio.file_hash(source)
                if source.name.lower().endswith(LESS_SUFFIXES):
                    etag = f"'{etag}'"
                url = self._config.url_for(source)
                links.append(self._tag(group, f"{url}?{query_key}={etag}"))
            markup = "".join(links)
        else:
            etag = await fileio.file_hash(output)
            url = group.url or self._config.url_for(output)
            markup = self._tag(group, f"{url}?{query_key}={etag}")

        self._cache[key] = (debug, markup)
        self._watch.register(paths, key, group_name, self._invalidate, baseline=baseline)
        _LOGGER.debug("Rendered links for %s (debug=%s)", group_name, debug)
        return markup

    def _invalidate(self, key: str, value: Any, reason: MonitorReason) -> None:
        """Drop the cached markup, it is rendered again on the next request."""
        _LOGGER.debug("Invalidating links for %s: %s", value, reason)
        self._cache.pop(key, None)

    def is_cached(self, group_name: str) -> bool:
        """Return True if markup for the group is cached."""
        group = self._config.get_group(group_name)
        if isinstance(group, SpriteGroupConfig):
            return False
        return f"{KEY_PREFIX}|{self._config.resolve(group.output)}" in self._cache
