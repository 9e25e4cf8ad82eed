"""Shared fixtures.

The pandoc library builds its element types from the installed pandoc
program, so the suite needs a pandoc binary on PATH. Without one the test
modules are not collected.
"""

import shutil

import pytest

PANDOC = shutil.which("pandoc")

if PANDOC is None:
    collect_ignore_glob = ["test_*.py"]


def pytest_report_header(config):
    if PANDOC is None:
        return "multibib: pandoc not found on PATH, tests not collected"
    return f"multibib: pandoc at {PANDOC}"


@pytest.fixture
def engine():
    from helpers import BIB_FILES, FakeCiteproc

    return FakeCiteproc(BIB_FILES)
