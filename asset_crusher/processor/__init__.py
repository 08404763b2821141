"""Content processors turning ordered sources into artifact outputs.

There is one processor per `ArtifactKind`. The cache selects the processor
through `default_processors` (or a mapping supplied by the caller), so
alternative minifiers or encoders can be plugged in per kind.
"""

from collections.abc import Mapping

import rcssmin
import rjsmin

from asset_crusher.artifact import ArtifactKind

from .base import ContentProcessor, ProcessResult
from .script import Minifier, ScriptProcessor, crush
from .sprite import IMAGE_PADDING, SpriteElement, SpriteProcessor

__all__ = [
    "ContentProcessor",
    "ProcessResult",
    "Minifier",
    "ScriptProcessor",
    "SpriteProcessor",
    "SpriteElement",
    "IMAGE_PADDING",
    "crush",
    "default_processors",
]

DEFAULT_QUERY_KEY = "etag"


def default_processors(
    query_key: str = DEFAULT_QUERY_KEY,
) -> Mapping[ArtifactKind, ContentProcessor]:
    """Return the processors for each artifact kind."""
    return {
        ArtifactKind.SCRIPT: ScriptProcessor(rjsmin.jsmin),
        ArtifactKind.STYLESHEET: ScriptProcessor(rcssmin.cssmin),
        ArtifactKind.SPRITE: SpriteProcessor(query_key=query_key),
    }
