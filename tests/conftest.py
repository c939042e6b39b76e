from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
# Ensure tests/ and src/ are importable when the package is not installed
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import FakeWeasyHTML, WorkspaceBuilder  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _clear_weasyprint_calls() -> Iterator[None]:
    FakeWeasyHTML.calls.clear()
    FakeWeasyHTML.page_count = 3
    yield
    FakeWeasyHTML.calls.clear()


@pytest.fixture(autouse=True)
def _reset_maker_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("markdown_maker")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
