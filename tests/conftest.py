"""Pytest configuration.

Puts the repository root on `sys.path` so tests can import the `lumine` package without installing
it first.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure `import lumine...` works when running pytest from a plain checkout.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))
