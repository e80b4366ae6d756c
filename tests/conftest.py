"""Pytest configuration and fixtures for event registration tests."""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from neo4j import WRITE_ACCESS

# Set test environment variables before importing the package
os.environ["NEO4J_URL"] = "neo4j://localhost:7687"
os.environ["NEO4J_USERNAME"] = "neo4j"
os.environ["NEO4J_PASSWORD"] = "testpassword"
os.environ["SMTP_HOST"] = "smtp.test"
os.environ["SENDER_EMAIL"] = "events@test.example"
os.environ["FRONTEND_URL"] = "https://app.test.example"


def make_result(single=None, data=None):
    """Create a mock driver result.

    Args:
        single: Record returned by result.single() (a dict or None).
        data: Rows returned by result.data().
    """
    result = MagicMock()
    result.single = AsyncMock(return_value=single)
    result.data = AsyncMock(return_value=data if data is not None else [])
    result.consume = AsyncMock()
    return result


class FakeGraph:
    """A mocked driver session with one reusable transaction.

    Queue the results tx.run should return, in call order, with queue().
    """

    def __init__(self):
        self.tx = MagicMock()
        self.tx.run = AsyncMock()
        self.tx.commit = AsyncMock()
        self.tx.close = AsyncMock()

        self.session = MagicMock()
        self.session.begin_transaction = AsyncMock(return_value=self.tx)
        self.session.run = AsyncMock(return_value=make_result())
        self.access_modes: list[str] = []

    def queue(self, *results) -> None:
        self.tx.run.side_effect = list(results)

    @property
    def queries(self) -> list[str]:
        return [call.args[0] for call in self.tx.run.call_args_list]

    def params(self, index: int) -> dict:
        return self.tx.run.call_args_list[index].args[1]

    def get_session(self, access_mode: str = WRITE_ACCESS):
        self.access_modes.append(access_mode)
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=self.session)
        context.__aexit__ = AsyncMock(return_value=None)
        return context


@pytest.fixture
def graph():
    """Patch the session factory so repositories talk to a FakeGraph."""
    fake = FakeGraph()
    with patch("eventreg.db.neo4j.get_session", side_effect=fake.get_session):
        yield fake


@pytest.fixture
def mock_neo4j_driver():
    """Create a mock Neo4j driver."""
    mock_driver = MagicMock()
    mock_driver.verify_connectivity = AsyncMock(return_value=True)
    mock_driver.close = AsyncMock()
    return mock_driver


@pytest.fixture
def mock_sender():
    """An EmailSender that records calls."""
    sender = MagicMock()
    sender.send_email = AsyncMock(return_value=None)
    return sender


@pytest.fixture
async def test_client(mock_neo4j_driver) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with a mocked graph driver."""
    with patch("eventreg.db.neo4j.AsyncGraphDatabase.driver", return_value=mock_neo4j_driver):
        with patch("eventreg.db.neo4j.Neo4jConnection._driver", mock_neo4j_driver):
            from eventreg.main import app

            async with AsyncClient(
                transport=ASGITransport(app=app),
                base_url="http://test"
            ) as client:
                yield client


@pytest.fixture
def phone_form_props():
    """Stored properties of a form with Email and Phone fields."""
    return {
        "id": 20001,
        "eventId": 10001,
        "fields": '[{"name":"Email","type":"email"},{"name":"Phone","type":"phone"}]',
    }


@pytest.fixture
def event_props():
    """Stored properties of an upcoming event."""
    return {
        "id": 10001,
        "name": "Spring Meetup",
        "description": "Talks & snacks",
        "imageBase64": "",
        "dateTime": "2026-05-01 18:00",
        "category": "tech",
        "location": "Hall A",
        "status": "upcoming",
        "invitationTemplateId": 20001,
    }


@pytest.fixture
def participant_props():
    """Stored properties of an uninvited participant with a QR code."""
    return {
        "id": 30001,
        "formId": 20001,
        "data": '{"Email":"a@b.com","Phone":"+1 555-1212"}',
        "invited": False,
        "attended": False,
        "qrCode": "iVBORw0KGgo=",
    }
