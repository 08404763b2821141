"""Representation of the artifacts managed by the cache.

An artifact is a derived file (a crushed script or stylesheet, or a sprite
image with its companion stylesheet) built from an ordered list of sources.
The `ArtifactSpec` describes where the sources come from and where the output
is written, and the `cache_key` derived from the output locations identifies
the artifact in the cache.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from urllib.parse import urlsplit

from slugify import slugify

from .exceptions import InvalidInputError
from .monitor import WatchHandle

__all__ = [
    "ArtifactKind",
    "Compression",
    "SourceRef",
    "ArtifactSpec",
    "CacheEntry",
]

KEY_SEPARATOR = "|"


class ArtifactKind(StrEnum):
    """The kind of artifact, used to select a content processor."""

    SCRIPT = "script"
    STYLESHEET = "stylesheet"
    SPRITE = "sprite"


class Compression(StrEnum):
    """How a script or stylesheet source is included in the artifact."""

    NONE = "none"
    """Include the source verbatim."""

    MIN = "min"
    """Minify the source together with the other minified sources."""


@dataclass(frozen=True)
class SourceRef:
    """A single source file contributing to an artifact."""

    path: Path
    """Local filesystem path of the source."""

    compression: Compression = Compression.NONE
    """Compression for script and stylesheet sources."""

    name: str | None = None
    """Display name for sprite elements, used as the css class name."""

    @property
    def display_name(self) -> str:
        """Return the sprite element name, derived from the file when not set."""
        if self.name:
            return self.name
        return slugify(self.path.stem, lowercase=True, separator="-")


def _check_url(url: str) -> None:
    if not url.strip() or any(c.isspace() for c in url):
        raise InvalidInputError(f"Invalid url '{url}'")
    try:
        urlsplit(url)
    except ValueError as err:
        raise InvalidInputError(f"Invalid url '{url}': {err}") from err


@dataclass(frozen=True)
class ArtifactSpec:
    """Descriptor of an artifact: ordered sources plus output locations."""

    kind: ArtifactKind
    """The kind of artifact to build."""

    output_path: Path
    """Path of the primary output (the sprite image for sprites)."""

    sources: tuple[SourceRef, ...] = field(default_factory=tuple)
    """Ordered sources, the order is preserved in the output."""

    url: str | None = None
    """Optional public url of the primary output."""

    css_output_path: Path | None = None
    """Path of the companion stylesheet, only used by sprites."""

    def __post_init__(self) -> None:
        """Validate the combination of fields."""
        # Accept any iterable of sources but always store an immutable tuple
        object.__setattr__(self, "sources", tuple(self.sources))
        if self.kind == ArtifactKind.SPRITE:
            if self.css_output_path is None:
                raise InvalidInputError(
                    f"Sprite {self.output_path} requires a css output path"
                )
        elif self.css_output_path is not None:
            raise InvalidInputError(
                f"Artifact {self.output_path} of kind {self.kind} does not support a css output path"
            )
        if self.url is not None:
            _check_url(self.url)

    @property
    def output_paths(self) -> list[Path]:
        """Return all paths written when building the artifact."""
        if self.css_output_path is not None:
            return [self.output_path, self.css_output_path]
        return [self.output_path]

    @property
    def source_paths(self) -> list[Path]:
        """Return the paths of all sources in order."""
        return [source.path for source in self.sources]

    @property
    def watch_paths(self) -> set[Path]:
        """Return the paths monitored for the artifact."""
        return set(self.output_paths) | set(self.source_paths)

    @property
    def cache_key(self) -> str:
        """Return the deterministic key identifying the artifact in the cache."""
        if self.kind == ArtifactKind.SPRITE:
            parts = [
                str(self.kind),
                str(self.output_path),
                self.url or "",
                str(self.css_output_path),
            ]
        else:
            parts = [str(self.kind), str(self.output_path)]
        return KEY_SEPARATOR.join(parts)


@dataclass(frozen=True, kw_only=True)
class CacheEntry:
    """An artifact that has been built and is being monitored.

    Entries are never modified. A regeneration installs a new entry.
    """

    key: str
    """The cache key of the artifact."""

    spec: ArtifactSpec
    """The artifact that was built."""

    generation: int
    """The generation of the build that installed this entry."""

    hashes: dict[Path, str] = field(default_factory=dict)
    """The content hash of each output path."""

    handle: WatchHandle | None = None
    """The active watch registration."""
