"""
asset-crusher combines scripts, stylesheets and images into derived artifacts
and keeps those artifacts up to date while their sources change on disk.

The main pieces are:
  - `artifact`: descriptors of the artifacts and the cache entries
  - `processor`: turning source contents into artifact outputs
  - `monitor`: watching the outputs and sources of an artifact
  - `coordinator`: the self-healing artifact cache
  - `links`: reference markup for crushed files
  - `config`: configuration files describing groups of sources
"""

__all__ = [
    "artifact",
    "config",
    "coordinator",
    "exceptions",
    "fileio",
    "links",
    "monitor",
    "processor",
    "store",
    "task",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
