"""Shared test configuration."""

import os
import tempfile
from pathlib import Path


def pytest_configure(config):
    """Point the default database at a throwaway file for the whole run."""
    tmpdir = tempfile.mkdtemp(prefix="restaurant_tracker_tests_")
    os.environ["DATABASE_URL"] = str(Path(tmpdir) / "default.db")
    os.environ.pop("CRAWL_SOURCE", None)
