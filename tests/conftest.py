"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import os
import sys
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of actionlens modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("actionlens"):
        del sys.modules[module_name]


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global config at an empty location and clear ACTIONLENS__ env vars."""
    import actionlens.config.loader as loader

    monkeypatch.setattr(loader, "GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml")
    for key in list(os.environ):
        if key.upper().startswith("ACTIONLENS__"):
            monkeypatch.delenv(key)
    return tmp_path
