"""Interface for content processors."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from asset_crusher.artifact import ArtifactSpec


@dataclass(frozen=True)
class ProcessResult:
    """The outputs of processing an artifact, in the order they are written."""

    outputs: dict[Path, bytes] = field(default_factory=dict)


class ContentProcessor(ABC):
    """Turns the current contents of the sources into the artifact outputs."""

    @abstractmethod
    async def process(self, spec: ArtifactSpec) -> ProcessResult:
        """Read the sources of the artifact and return the outputs.

        The result must only depend on the source contents and `spec` so
        that processing unchanged sources yields byte-identical output.

        Raises:
            IoError: If a source can not be read.
            InvalidInputError: If the sources can not be processed.
        """
