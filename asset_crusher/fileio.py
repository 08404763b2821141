"""Library for reading and writing artifact files with bounded retries.

Source files may be briefly locked or missing while an editor or deploy tool
is replacing them, so every read and write is attempted a few times before
giving up with an `IoError`.
"""

import asyncio
import hashlib
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import aiofiles
import aiofiles.os

from .exceptions import IoError

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "read_text",
    "read_bytes",
    "write_bytes",
    "content_hash",
    "file_hash",
]

DEFAULT_RETRIES = 5
DEFAULT_RETRY_DELAY = 0.1

T = TypeVar("T")


async def _with_retries(
    path: Path,
    func: Callable[[], Awaitable[T]],
    retries: int,
    retry_delay: float,
) -> T:
    """Run the file operation until it succeeds or retries are exhausted."""
    attempt = 0
    while True:
        attempt += 1
        try:
            return await func()
        except OSError as err:
            if attempt >= retries:
                raise IoError(str(path), f"{err} (after {attempt} attempts)") from err
            _LOGGER.debug(
                "Attempt %d for %s failed, retrying: %s", attempt, path, err
            )
            await asyncio.sleep(retry_delay)


async def read_bytes(
    path: Path,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> bytes:
    """Return the contents of the file as bytes."""

    async def _read() -> bytes:
        async with aiofiles.open(str(path), mode="rb") as fd:
            return await fd.read()

    return await _with_retries(path, _read, retries, retry_delay)


async def read_text(
    path: Path,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> str:
    """Return the contents of the file as text.

    A leading byte order mark is dropped so that concatenated sources do not
    carry stray markers into the middle of an artifact.
    """

    async def _read() -> str:
        async with aiofiles.open(str(path), mode="r", encoding="utf-8-sig") as fd:
            return await fd.read()

    try:
        return await _with_retries(path, _read, retries, retry_delay)
    except UnicodeDecodeError as err:
        raise IoError(str(path), f"not valid utf-8: {err}") from err


async def write_bytes(
    content: bytes,
    path: Path,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> str:
    """Write the content to the file, returning the content hash."""

    async def _write() -> None:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(str(path), mode="wb") as fd:
            await fd.write(content)

    await _with_retries(path, _write, retries, retry_delay)
    return content_hash(content)


def content_hash(content: bytes) -> str:
    """Return the etag style hash used for cache busting."""
    return hashlib.md5(content).hexdigest()


async def file_hash(
    path: Path,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> str:
    """Return the content hash of a file on disk."""
    return content_hash(await read_bytes(path, retries, retry_delay))
