import sys
from pathlib import Path

import pytest

# Ensure the `rankgrid` package is importable when running pytest from the worker directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rankgrid.core.models import Competitor  # noqa: E402
from rankgrid.oracle import OracleOk  # noqa: E402


class FakeOracle:
    """Answers from a list of outcomes (or exceptions) in call order."""

    def __init__(self, outcomes=None, default=None):
        self.outcomes = list(outcomes or [])
        self.default = default if default is not None else OracleOk(rank=None)
        self.calls = []

    def check_rank(self, keyword, lat, lng, target_id):
        self.calls.append((keyword, lat, lng, target_id))
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def ok(rank, *competitor_ids):
    competitors = tuple(Competitor(rank=i, name=f"Biz {cid}", place_id=cid) for i, cid in enumerate(competitor_ids, 1))
    return OracleOk(rank=rank, competitors=competitors)


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def sleeps():
    """Collects requested delays instead of sleeping."""
    return []
