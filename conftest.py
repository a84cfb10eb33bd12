import pytest

from stockpail.store import SqlRecordStore
from stockpail.stock_service import StockService


@pytest.fixture
def store(tmp_path):
    return SqlRecordStore(f"sqlite:///{tmp_path / 'stocks.db'}")


@pytest.fixture
def service(store):
    return StockService(store)
