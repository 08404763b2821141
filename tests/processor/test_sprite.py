"""Tests for the sprite processor."""

import io
from pathlib import Path

import pytest
from PIL import Image

from asset_crusher import fileio
from asset_crusher.artifact import ArtifactKind, ArtifactSpec, SourceRef
from asset_crusher.exceptions import InvalidInputError
from asset_crusher.processor import IMAGE_PADDING, SpriteProcessor

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
TRANSPARENT = (0, 0, 0, 0)


def write_image(path: Path, size: tuple[int, int], color: tuple[int, ...]) -> None:
    """Write a single color png."""
    Image.new("RGBA", size, color).save(path, format="PNG")


@pytest.fixture
def sprite_spec(tmp_path: Path) -> ArtifactSpec:
    """Fixture for a sprite of three images with heights 10, 20 and 30."""
    write_image(tmp_path / "add.png", (50, 10), RED)
    write_image(tmp_path / "edit.png", (20, 20), GREEN)
    write_image(tmp_path / "delete.png", (30, 30), BLUE)
    return ArtifactSpec(
        kind=ArtifactKind.SPRITE,
        output_path=tmp_path / "out" / "icons.png",
        sources=[
            SourceRef(tmp_path / "add.png", name="icon-add"),
            SourceRef(tmp_path / "edit.png", name="icon-edit"),
            SourceRef(tmp_path / "delete.png"),
        ],
        url="/static/icons.png",
        css_output_path=tmp_path / "out" / "icons.css",
    )


async def test_sprite_geometry(sprite_spec: ArtifactSpec) -> None:
    """Test the images are stacked vertically with padding."""
    assert IMAGE_PADDING == 2
    result = await SpriteProcessor(query_key="etag").process(sprite_spec)
    assert list(result.outputs) == sprite_spec.output_paths

    with Image.open(io.BytesIO(result.outputs[sprite_spec.output_path])) as sprite:
        assert sprite.format == "PNG"
        assert sprite.size == (50, 66)
        sprite = sprite.convert("RGBA")
        assert sprite.getpixel((0, 0)) == RED
        assert sprite.getpixel((49, 9)) == RED
        assert sprite.getpixel((0, 10)) == TRANSPARENT
        assert sprite.getpixel((0, 11)) == TRANSPARENT
        assert sprite.getpixel((0, 12)) == GREEN
        assert sprite.getpixel((20, 12)) == TRANSPARENT
        assert sprite.getpixel((0, 34)) == BLUE
        assert sprite.getpixel((29, 63)) == BLUE
        assert sprite.getpixel((0, 64)) == TRANSPARENT


async def test_sprite_css(sprite_spec: ArtifactSpec) -> None:
    """Test the stylesheet positions each image in the sprite."""
    result = await SpriteProcessor(query_key="v").process(sprite_spec)
    etag = fileio.content_hash(result.outputs[sprite_spec.output_path])
    assert sprite_spec.css_output_path
    css = result.outputs[sprite_spec.css_output_path].decode()
    assert css.splitlines() == [
        f".icon-add {{background-image: url('/static/icons.png?v={etag}');background-position: 0px -0px;width: 50px;height: 10px;}}",
        f".icon-edit {{background-image: url('/static/icons.png?v={etag}');background-position: 0px -12px;width: 20px;height: 20px;}}",
        f".delete {{background-image: url('/static/icons.png?v={etag}');background-position: 0px -34px;width: 30px;height: 30px;}}",
    ]


async def test_sprite_is_deterministic(sprite_spec: ArtifactSpec) -> None:
    """Test composing the same images yields identical outputs."""
    processor = SpriteProcessor(query_key="etag")
    first = await processor.process(sprite_spec)
    second = await processor.process(sprite_spec)
    assert first.outputs == second.outputs


async def test_sprite_default_url(tmp_path: Path) -> None:
    """Test the image is referenced by file name when no url is set."""
    write_image(tmp_path / "add.png", (4, 4), RED)
    spec = ArtifactSpec(
        kind=ArtifactKind.SPRITE,
        output_path=tmp_path / "icons.png",
        sources=[SourceRef(tmp_path / "add.png")],
        css_output_path=tmp_path / "icons.css",
    )
    result = await SpriteProcessor(query_key="etag").process(spec)
    css = result.outputs[tmp_path / "icons.css"].decode()
    assert "url('icons.png?etag=" in css


async def test_sprite_empty(tmp_path: Path) -> None:
    """Test a sprite without images is rejected."""
    spec = ArtifactSpec(
        kind=ArtifactKind.SPRITE,
        output_path=tmp_path / "icons.png",
        css_output_path=tmp_path / "icons.css",
    )
    with pytest.raises(InvalidInputError, match="has no images"):
        await SpriteProcessor(query_key="etag").process(spec)


async def test_sprite_invalid_image(tmp_path: Path) -> None:
    """Test a source that is not an image is rejected."""
    (tmp_path / "add.png").write_text("not an image")
    spec = ArtifactSpec(
        kind=ArtifactKind.SPRITE,
        output_path=tmp_path / "icons.png",
        sources=[SourceRef(tmp_path / "add.png", name="icon-add")],
        css_output_path=tmp_path / "icons.css",
    )
    with pytest.raises(InvalidInputError, match="Unable to decode image for icon-add"):
        await SpriteProcessor(query_key="etag").process(spec)


async def test_sprite_image_too_large(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test an image over the decoder pixel limit is rejected."""
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    write_image(tmp_path / "add.png", (10, 10), RED)
    spec = ArtifactSpec(
        kind=ArtifactKind.SPRITE,
        output_path=tmp_path / "icons.png",
        sources=[SourceRef(tmp_path / "add.png", name="icon-add")],
        css_output_path=tmp_path / "icons.css",
    )
    with pytest.raises(InvalidInputError, match="Unable to decode image for icon-add"):
        await SpriteProcessor(query_key="etag").process(spec)
