"""Fixtures for the asset-crusher command line tests."""

from pathlib import Path

import pytest

CONFIG = """\
url_prefix: /static/
query_key: v
monitor:
  interval: 0.05
scripts:
  - name: site
    output: www/site.js
    files:
      - path: src/a.js
      - path: src/b.js
        compression: min
stylesheets:
  - name: theme
    output: www/theme.css
    files:
      - path: src/theme.css
"""


@pytest.fixture(name="config_file")
def config_file_fixture(tmp_path: Path) -> Path:
    """Fixture for a configuration file and its sources."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.js").write_text("var a = 1;")
    (src / "b.js").write_text("function b() {\n  return 2;\n}\n")
    (src / "theme.css").write_text("body {\n  color: red;\n}\n")
    config_file = tmp_path / "crusher.yaml"
    config_file.write_text(CONFIG)
    return config_file
