import sys
from pathlib import Path

import pytest

# Ensure 'src' directory is on sys.path for tests
PROJECT_ROOT = Path(__file__).resolve().parent
SRC_DIR = PROJECT_ROOT / 'src'
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


class DictLookup:
    """Lookup source backed by a dict that records every key asked for."""

    def __init__(self, values):
        self.values = dict(values)
        self.calls = []

    def __call__(self, key):
        self.calls.append(key)
        if key in self.values:
            return self.values[key], True
        return "", False


@pytest.fixture
def make_lookup():
    return DictLookup
