"""Persistence of processed artifact outputs."""

import logging
from pathlib import Path

from . import fileio
from .processor import ProcessResult

_LOGGER = logging.getLogger(__name__)


class ArtifactStore:
    """Writes artifact outputs to their locations on the local filesystem."""

    def __init__(
        self,
        retries: int = fileio.DEFAULT_RETRIES,
        retry_delay: float = fileio.DEFAULT_RETRY_DELAY,
    ) -> None:
        """Initialize ArtifactStore."""
        self._retries = retries
        self._retry_delay = retry_delay

    async def write(self, result: ProcessResult) -> dict[Path, str]:
        """Write every output in order, returning the content hash of each.

        Raises:
            IoError: If an output can not be written.
        """
        hashes: dict[Path, str] = {}
        for path, content in result.outputs.items():
            hashes[path] = await fileio.write_bytes(
                content, path, self._retries, self._retry_delay
            )
            _LOGGER.debug("Wrote %d bytes to %s (%s)", len(content), path, hashes[path])
        return hashes
