"""Make scripts/ importable the way the action runs them."""

import os
import sys
from pathlib import Path

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"
sys.path.insert(0, str(SCRIPTS_DIR))

os.environ.setdefault("GITHUB_WORKSPACE", "/tmp/test-repo")
