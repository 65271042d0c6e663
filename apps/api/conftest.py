import os
import sys
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Add project root to python path for tests
ROOT_DIR = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT_DIR))

# Keep test checklists and templates out of the real data directory
os.environ.setdefault("FLEETCHECK_DATA_DIR", tempfile.mkdtemp(prefix="fleetcheck-tests-"))

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")
