"""Path helpers for project directories."""

from __future__ import annotations

import os
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("FLEETCHECK_DATA_DIR", str(ROOT_DIR / "data")))
CHECKLISTS_DIR = DATA_DIR / "checklists"
TEMPLATES_DIR = DATA_DIR / "templates"
