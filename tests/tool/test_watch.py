"""Tests for the asset-crusher `watch` command."""

import asyncio
from pathlib import Path

import pytest

from asset_crusher.tool.watch import WatchAction


async def wait_for_content(path: Path, content: str) -> None:
    async with asyncio.timeout(10):
        while not path.exists() or path.read_text() != content:
            await asyncio.sleep(0.05)


async def test_watch_rebuilds(config_file: Path) -> None:
    """Test the watch command builds every group and rebuilds on change."""
    www = config_file.parent / "www"
    action = asyncio.create_task(WatchAction().run(config=config_file))

    await wait_for_content(www / "theme.css", "body {\n  color: red;\n}\n\n")
    assert (www / "site.js").read_text().startswith("var a = 1;\n")

    (config_file.parent / "src" / "theme.css").write_text("p {\n  margin: 0;\n}\n")
    await wait_for_content(www / "theme.css", "p {\n  margin: 0;\n}\n\n")

    action.cancel()
    with pytest.raises(asyncio.CancelledError):
        await action
