"""
Root conftest.py so tests import the package and entry modules from the repo root.
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))
