import json
import os
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


@pytest.fixture(scope="session")
def samples_dir(repo_root: Path) -> Path:
    return repo_root / "reporting" / "samples"


@pytest.fixture
def standard_text(samples_dir: Path) -> str:
    return (samples_dir / "standard_trades.json").read_text(encoding="utf-8")


@pytest.fixture
def round_trip_text(samples_dir: Path) -> str:
    return (samples_dir / "round_trip.json").read_text(encoding="utf-8")


@pytest.fixture
def example_one_text() -> str:
    return json.dumps(
        [
            {"date": "2025-01-01T09:00:00Z", "asset": "SOL", "side": "buy", "quantity": 2, "price": 100, "fees": 0.1},
            {"date": "2025-01-01T11:00:00Z", "asset": "SOL", "side": "sell", "quantity": 1, "price": 120, "fees": 0.1},
        ]
    )


@pytest.fixture(autouse=True)
def quiet_metrics_env():
    prev = os.environ.pop("JOURNAL_DEBUG_METRICS", None)
    yield
    if prev is None:
        os.environ.pop("JOURNAL_DEBUG_METRICS", None)
    else:
        os.environ["JOURNAL_DEBUG_METRICS"] = prev
