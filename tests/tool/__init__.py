"""Test helpers for asset-crusher tools."""

import asyncio
import sys
from dataclasses import dataclass

ASSET_CRUSHER_BIN = [sys.executable, "-m", "asset_crusher"]


@dataclass
class CommandResult:
    """Output of a finished command."""

    returncode: int
    stdout: str
    stderr: str


async def run_command(args: list[str]) -> CommandResult:
    proc = await asyncio.create_subprocess_exec(
        *ASSET_CRUSHER_BIN,
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    out, err = await proc.communicate()
    return CommandResult(
        returncode=proc.returncode or 0,
        stdout=out.decode("utf-8"),
        stderr=err.decode("utf-8"),
    )
