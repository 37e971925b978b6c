"""Pytest configuration for the localgen test suite."""

import sys
from pathlib import Path

# Make the localgen package importable without installing it
sys.path.insert(0, str(Path(__file__).parent.parent))
