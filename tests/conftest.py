"""Shared test fixtures for MoodPulse backend tests."""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from moodpulse.config import CarrierConfig, DispatchConfig
from moodpulse.insights.services.aggregator import ScoreSample


@pytest.fixture
def sample_org_id():
    return str(ObjectId())


@pytest.fixture
def sample_employee_id():
    return str(ObjectId())


@pytest.fixture
def now():
    return datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, insert_one,
    # count_documents etc. stay as AsyncMock.
    collection.find = MagicMock()
    return collection


@pytest.fixture
def mock_db(mock_collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=mock_collection)
    return db


def make_cursor(docs):
    """Chainable Motor-style cursor returning docs from to_list()."""
    cursor = MagicMock()
    cursor.sort = MagicMock(return_value=cursor)
    cursor.limit = MagicMock(return_value=cursor)
    cursor.to_list = AsyncMock(return_value=list(docs))
    return cursor


def make_samples(scores, now, employee_id=None, step=timedelta(days=1)):
    """Samples oldest first, the last one at `now`."""
    count = len(scores)
    return [
        ScoreSample(score=score, created_at=now - step * (count - 1 - i), employee_id=employee_id)
        for i, score in enumerate(scores)
    ]


@pytest.fixture
def carrier_config():
    return CarrierConfig(
        account_sid="AC0123456789abcdef0123456789abcdef",
        auth_token="secret-auth-token",
        sender_number="+14155238886",
        api_base_url="https://carrier.test",
    )


@pytest.fixture
def dispatch_config():
    return DispatchConfig(max_concurrency=2, send_timeout_seconds=1.0)


@pytest.fixture
def sample_employee_doc(sample_org_id, sample_employee_id):
    return {
        "_id": ObjectId(sample_employee_id),
        "organizationId": ObjectId(sample_org_id),
        "firstName": "Amina",
        "lastName": "Otieno",
        "phone": "+254700000001",
        "department": "Engineering",
        "languagePreference": "en",
        "anonymityPreference": False,
        "isActive": True,
    }


@pytest.fixture
def sample_org_doc(sample_org_id):
    return {
        "_id": ObjectId(sample_org_id),
        "name": "Acme Ltd",
        "subscriptionStatus": "active",
    }


@pytest.fixture
def cursor_of():
    return make_cursor


@pytest.fixture
def samples_of():
    return make_samples
