"""Processor composing images into a css sprite.

The source images are stacked vertically in order, separated by a fixed
padding, and written as a single png. The companion stylesheet has a rule
per image that positions the background of the sprite image so that only
that image is visible.
"""

import asyncio
import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from asset_crusher import fileio
from asset_crusher.artifact import ArtifactSpec
from asset_crusher.exceptions import InvalidInputError

from .base import ContentProcessor, ProcessResult

_LOGGER = logging.getLogger(__name__)

IMAGE_PADDING = 2

CSS_RULE_TEMPLATE = (
    ".{name} {{background-image: url('{url}');"
    "background-position: 0px -{offset}px;"
    "width: {width}px;height: {height}px;}}"
)


@dataclass
class SpriteElement:
    """A decoded image taking part in a single sprite composition."""

    name: str
    width: int
    height: int
    image: Image.Image


def decode(name: str, content: bytes) -> SpriteElement:
    """Decode the image fully so the source contents can be released."""
    try:
        with Image.open(io.BytesIO(content)) as image:
            image.load()
            rgba = image.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as err:
        raise InvalidInputError(f"Unable to decode image for {name}: {err}") from err
    return SpriteElement(name=name, width=rgba.width, height=rgba.height, image=rgba)


def offsets(elements: list[SpriteElement]) -> list[int]:
    """Return the vertical offset of each element in the sprite."""
    result = []
    current = 0
    for element in elements:
        result.append(current)
        current += element.height + IMAGE_PADDING
    return result


def canvas_size(elements: list[SpriteElement]) -> tuple[int, int]:
    """Return the width and height of the sprite image."""
    if not elements:
        raise InvalidInputError("A sprite requires at least one image")
    width = max(element.width for element in elements)
    height = sum(element.height + IMAGE_PADDING for element in elements)
    return width, height


def compose(elements: list[SpriteElement]) -> bytes:
    """Return the png encoded sprite image."""
    sprite = Image.new("RGBA", canvas_size(elements), (0, 0, 0, 0))
    for element, offset in zip(elements, offsets(elements)):
        sprite.paste(element.image, (0, offset))
    buffer = io.BytesIO()
    sprite.save(buffer, format="PNG")
    return buffer.getvalue()


def sprite_css(elements: list[SpriteElement], image_url: str) -> str:
    """Return the stylesheet rules locating each element in the sprite."""
    rules = [
        CSS_RULE_TEMPLATE.format(
            name=element.name,
            url=image_url,
            offset=offset,
            width=element.width,
            height=element.height,
        )
        for element, offset in zip(elements, offsets(elements))
    ]
    return "\n".join(rules) + "\n"


class SpriteProcessor(ContentProcessor):
    """Builds a sprite image and its companion stylesheet."""

    def __init__(self, query_key: str) -> None:
        """Initialize SpriteProcessor."""
        self._query_key = query_key

    def _build(self, contents: list[tuple[str, bytes]]) -> tuple[bytes, list[SpriteElement]]:
        elements = [decode(name, content) for name, content in contents]
        return compose(elements), elements

    async def process(self, spec: ArtifactSpec) -> ProcessResult:
        """Read the images and compose the sprite."""
        if not spec.sources:
            raise InvalidInputError(f"Sprite {spec.output_path} has no images")
        if spec.css_output_path is None:
            raise InvalidInputError(f"Sprite {spec.output_path} has no css output")
        contents = [
            (source.display_name, await fileio.read_bytes(source.path))
            for source in spec.sources
        ]
        image, elements = await asyncio.to_thread(self._build, contents)
        etag = fileio.content_hash(image)
        image_url = f"{spec.url or spec.output_path.name}?{self._query_key}={etag}"
        _LOGGER.debug(
            "Composed %d images into %s (%s)", len(elements), spec.output_path, etag
        )
        css = sprite_css(elements, image_url)
        return ProcessResult(
            outputs={
                spec.output_path: image,
                spec.css_output_path: css.encode("utf-8"),
            }
        )
