"""Shared fixtures for the ordersync test suite."""

from datetime import datetime, timezone

import pytest

from ordersync.core.config import Settings
from ordersync.ingestion.admission import AdmissionPolicy
from ordersync.ingestion.kv_store import SqlKeyValueStore
from ordersync.ingestion.ledger import ProcessedFileLedger
from tests.factories import API_KEY, BASE_URL, FakeCommerceAPI, detail_line, header_line, order_file

CUTOFF = datetime(2025, 6, 19, 17, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings():
    return Settings(
        COMMERCE_API_BASE_URL=BASE_URL,
        COMMERCE_API_KEY=API_KEY,
        ORDER_SOURCE_ID="source-1",
        CUSTOMER_SETTLE_DELAY_S=0,
        SKU_BATCH_SIZE=200,
        AUTO_SYNC_ON_STARTUP=False,
        LEDGER_DATABASE_URL="sqlite:///:memory:",
        FILE_DELETION=False,
        SKIP_PROCESSED_FILES=True,
        CUTOFF_DATETIME=CUTOFF,
    )


@pytest.fixture
def store():
    kv = SqlKeyValueStore("sqlite:///:memory:")
    yield kv
    kv.close()


@pytest.fixture
def ledger(store):
    return ProcessedFileLedger(store)


@pytest.fixture
def policy():
    return AdmissionPolicy(cutoff=CUTOFF, min_size_bytes=10, skip_processed=True)


@pytest.fixture
def commerce_api():
    return FakeCommerceAPI()


@pytest.fixture
def sample_file():
    """One order, one line item: the Hoghton example."""
    return order_file(header_line(), detail_line())
