"""Shared fixtures: isolated iteration file and image directory per test."""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from artvote.main import create_app
from artvote.state import IterationCounter, VoteLedger


@pytest.fixture
def images_dir(tmp_path: Path) -> Path:
    """Image root holding a single source set, as the server expects."""
    root = tmp_path / "images"
    (root / "test_images").mkdir(parents=True)
    (root / "test_images" / "1.png").write_bytes(b"\x89PNG fake")
    return root


@pytest.fixture
def iteration_file(tmp_path: Path) -> Path:
    return tmp_path / "iteration"


@pytest.fixture
def counter(iteration_file: Path) -> IterationCounter:
    return IterationCounter.load(iteration_file)


@pytest.fixture
def ledger() -> VoteLedger:
    return VoteLedger()


@pytest.fixture
def make_app(iteration_file: Path, images_dir: Path):
    """Build an app against the temp directories; cycle off unless asked."""
    def _make(**overrides):
        opts = dict(
            iteration_file=str(iteration_file),
            images_dir=str(images_dir),
            cycle_enabled=False,
            cycle_trigger="manual",
            images_per_iteration=2,
        )
        opts.update(overrides)
        return create_app(**opts)
    return _make


@pytest.fixture
def client(make_app):
    with TestClient(make_app()) as c:
        yield c
