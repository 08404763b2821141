"""Configuration of the artifact groups managed by asset-crusher.

A configuration file is a YAML document listing script, stylesheet and sprite
groups. Each group names its output location and the ordered source files
that are combined into it. Relative paths are resolved against `root`, which
itself defaults to the directory holding the configuration file.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

import aiofiles
import yaml
from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField

from .artifact import ArtifactKind, ArtifactSpec, Compression, SourceRef
from .coordinator import CoordinatorConfig
from .exceptions import ConfigurationError, CrusherException
from .monitor.monitor import DEFAULT_INTERVAL

__all__ = [
    "CrusherConfig",
    "FileConfig",
    "ScriptGroupConfig",
    "StylesheetGroupConfig",
    "SpriteGroupConfig",
    "MonitorConfig",
    "load_config",
    "parse_config",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_QUERY_KEY = "etag"


@dataclass
class FileConfig(DataClassDictMixin):
    """A source file of a group."""

    path: str
    """Path of the source, relative to the root."""

    compression: Compression = Compression.NONE
    """Compression applied to script and stylesheet sources."""

    name: str | None = None
    """Css class name of a sprite image, defaults to the file name."""

    class Config(BaseConfig):
        omit_none = True


@dataclass
class ScriptGroupConfig(DataClassDictMixin):
    """A group of scripts crushed into a single file."""

    name: str
    """Name used to reference the group."""

    output: str
    """Path of the crushed file, relative to the root."""

    files: list[FileConfig] = field(default_factory=list)
    """Ordered source files."""

    url: str | None = None
    """Public url of the crushed file, derived from the output path when not set."""

    debug: bool = False
    """Reference each source individually instead of the crushed file."""

    kind: ClassVar[ArtifactKind] = ArtifactKind.SCRIPT

    class Config(BaseConfig):
        omit_none = True


@dataclass
class StylesheetGroupConfig(ScriptGroupConfig):
    """A group of stylesheets crushed into a single file."""

    media: str = "all"
    """The media attribute of the stylesheet reference."""

    kind: ClassVar[ArtifactKind] = ArtifactKind.STYLESHEET


@dataclass
class SpriteGroupConfig(DataClassDictMixin):
    """A group of images composed into a css sprite."""

    name: str
    """Name used to reference the group."""

    image_output: str
    """Path of the sprite image, relative to the root."""

    css_output: str
    """Path of the sprite stylesheet, relative to the root."""

    files: list[FileConfig] = field(default_factory=list)
    """Ordered source images."""

    image_url: str | None = None
    """Public url of the sprite image, derived from the output path when not set."""

    kind: ClassVar[ArtifactKind] = ArtifactKind.SPRITE

    class Config(BaseConfig):
        omit_none = True


GroupConfig = ScriptGroupConfig | StylesheetGroupConfig | SpriteGroupConfig


@dataclass
class MonitorConfig(DataClassDictMixin):
    """Configuration of the polling path monitor."""

    interval: float = DEFAULT_INTERVAL
    """Seconds between checks for changes."""

    capacity: int | None = None
    """Maximum number of watches before the oldest is evicted."""

    expiry: float | None = None
    """Seconds after which a watch expires and is registered again."""


@dataclass
class CrusherConfig(DataClassDictMixin):
    """Top level configuration file."""

    root: str = "."
    """Base directory for relative paths."""

    url_prefix: str = "/"
    """Public url of the root directory."""

    query_key: str = DEFAULT_QUERY_KEY
    """Name of the cache busting query parameter."""

    cache: CoordinatorConfig = field(default_factory=CoordinatorConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)

    scripts: list[ScriptGroupConfig] = field(default_factory=list)
    stylesheets: list[StylesheetGroupConfig] = field(default_factory=list)
    sprites: list[SpriteGroupConfig] = field(default_factory=list)

    class Config(BaseConfig):
        omit_none = True

    @property
    def root_path(self) -> Path:
        """Return the base directory for relative paths."""
        return Path(self.root)

    @property
    def groups(self) -> list[GroupConfig]:
        """Return all groups in configuration order."""
        return [*self.scripts, *self.stylesheets, *self.sprites]

    def validate(self) -> None:
        """Check that group names are unique."""
        seen: set[str] = set()
        for group in self.groups:
            if group.name in seen:
                raise ConfigurationError(f"Duplicate group name '{group.name}'")
            seen.add(group.name)

    def get_group(self, name: str) -> GroupConfig:
        """Return the group with the specified name."""
        for group in self.groups:
            if group.name == name:
                return group
        raise ConfigurationError(f"Unknown group '{name}'")

    def resolve(self, path: str) -> Path:
        """Return the local path for a path in the configuration."""
        resolved = Path(path)
        if resolved.is_absolute():
            return resolved
        return self.root_path / resolved

    def url_for(self, path: Path) -> str:
        """Return the public url of a local path under the root."""
        try:
            relative = path.relative_to(self.root_path)
        except ValueError as err:
            raise ConfigurationError(
                f"Unable to determine url of {path}, not under {self.root_path}"
            ) from err
        return f"{self.url_prefix.rstrip('/')}/{relative.as_posix()}"

    def spec_for(self, group: GroupConfig) -> ArtifactSpec:
        """Return the artifact built for the group."""
        sources = [
            SourceRef(
                path=self.resolve(file.path),
                compression=file.compression,
                name=file.name,
            )
            for file in group.files
        ]
        try:
            if isinstance(group, SpriteGroupConfig):
                image_output = self.resolve(group.image_output)
                return ArtifactSpec(
                    kind=ArtifactKind.SPRITE,
                    output_path=image_output,
                    sources=tuple(sources),
                    url=group.image_url or self.url_for(image_output),
                    css_output_path=self.resolve(group.css_output),
                )
            return ArtifactSpec(
                kind=group.kind,
                output_path=self.resolve(group.output),
                sources=tuple(sources),
                url=group.url,
            )
        except CrusherException as err:
            raise ConfigurationError(f"Invalid group '{group.name}': {err}") from err

    def artifact_specs(self, names: list[str] | None = None) -> list[ArtifactSpec]:
        """Return the artifacts for the named groups, or all groups."""
        if names:
            return [self.spec_for(self.get_group(name)) for name in names]
        return [self.spec_for(group) for group in self.groups]


def parse_config(content: str, base_dir: Path) -> CrusherConfig:
    """Parse the contents of a configuration file.

    A relative `root` is resolved against `base_dir`.
    """
    if not content.strip():
        raise ConfigurationError("Configuration file is empty")
    try:
        config = yaml_decode(content, CrusherConfig)
    except yaml.YAMLError as err:
        raise ConfigurationError(f"Configuration is not valid yaml: {err}") from err
    except (
        MissingField,
        InvalidFieldValue,
        ValueError,
        TypeError,
        AttributeError,
    ) as err:
        raise ConfigurationError(f"Invalid configuration: {err}") from err
    root = Path(config.root)
    if not root.is_absolute():
        config = dataclasses.replace(config, root=str(base_dir / root))
    config.validate()
    return config


async def load_config(config_path: Path) -> CrusherConfig:
    """Read and parse the configuration file."""
    _LOGGER.debug("Loading configuration %s", config_path)
    try:
        async with aiofiles.open(str(config_path)) as config_file:
            content = await config_file.read()
    except OSError as err:
        raise ConfigurationError(
            f"Unable to read configuration {config_path}: {err}"
        ) from err
    return parse_config(content, config_path.parent)
