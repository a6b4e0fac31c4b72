from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for entry in (SRC, ROOT):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from tests.fixtures.ollama_fake import FakeOllama, RecordingSleep  # noqa: E402


@pytest.fixture
def server() -> FakeOllama:
    """A scripted, in-process Ollama server."""

    return FakeOllama()


@pytest.fixture
def sleep() -> RecordingSleep:
    """Sleep replacement that records retry delays without waiting."""

    return RecordingSleep()
