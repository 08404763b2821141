"""Processor for script and stylesheet artifacts."""

import asyncio
import logging
from collections.abc import Callable, Iterable

from asset_crusher import fileio
from asset_crusher.artifact import ArtifactSpec, Compression

from .base import ContentProcessor, ProcessResult

_LOGGER = logging.getLogger(__name__)

Minifier = Callable[[str], str]


def crush(contents: Iterable[tuple[Compression, str]], minifier: Minifier) -> str:
    """Combine the source contents into a single artifact.

    Verbatim sources come first in their original order. The sources to
    minify are concatenated in their original order and minified as one unit,
    and the result is appended after the verbatim block.
    """
    verbatim: list[str] = []
    to_minify: list[str] = []
    for compression, text in contents:
        if compression == Compression.MIN:
            to_minify.append(text + "\n")
        else:
            verbatim.append(text + "\n")
    output = "".join(verbatim)
    if to_minify:
        output += minifier("".join(to_minify))
    return output


class ScriptProcessor(ContentProcessor):
    """Concatenates and minifies text sources."""

    def __init__(self, minifier: Minifier) -> None:
        """Initialize ScriptProcessor."""
        self._minifier = minifier

    async def process(self, spec: ArtifactSpec) -> ProcessResult:
        """Read the sources and crush them into the output."""
        contents = [
            (source.compression, await fileio.read_text(source.path))
            for source in spec.sources
        ]
        _LOGGER.debug("Crushing %d sources into %s", len(contents), spec.output_path)
        output = await asyncio.to_thread(crush, contents, self._minifier)
        return ProcessResult(outputs={spec.output_path: output.encode("utf-8")})
