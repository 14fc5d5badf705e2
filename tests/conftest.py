from datetime import date
import json

import pytest

from tests.helpers import SAMPLE_LEDGER


@pytest.fixture
def sample_ledger_dict() -> dict:
    return json.loads(SAMPLE_LEDGER.read_text(encoding="utf-8"))


@pytest.fixture
def today() -> date:
    return date(2026, 6, 1)
