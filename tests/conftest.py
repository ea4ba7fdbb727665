from pathlib import Path

import pytest

from pharmsearch.infra.repo.memory_index import InMemoryEntityIndex

FIXTURE = Path(__file__).parent / "fixtures" / "index_rows.json"


@pytest.fixture
def index():
    return InMemoryEntityIndex.from_json(FIXTURE)
