"""Tests for the event repository."""

import pytest

from eventreg.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from eventreg.models import EventCreate, EventStatus, EventUpdate
from eventreg.repositories.events import EventRepository
from tests.conftest import make_result


@pytest.fixture
def repo():
    return EventRepository()


def event_record(event_props, created_by=501):
    return make_result(single={"event": event_props, "created_by": created_by})


class TestCreateEvent:
    """Tests for creating events."""

    @pytest.mark.asyncio
    async def test_create_links_organizer(self, graph, repo):
        graph.queue(
            make_result(single={"id": 501}),
            make_result(single={"last": 10001}),
            make_result(),
        )

        event_id = await repo.create(EventCreate(name="Meetup", location="Hall A"), created_by=501)

        assert event_id == 10001
        params = graph.params(2)
        assert params["user_id"] == 501
        assert params["props"]["status"] == "upcoming"
        assert params["props"]["location"] == "Hall A"
        assert params["props"]["description"] == ""
        assert "createdBy" not in params["props"]
        assert "CREATE (u)-[:CREATED]->(e)" in graph.queries[2]

    @pytest.mark.asyncio
    async def test_create_unknown_user(self, graph, repo):
        graph.queue(make_result(single=None))

        with pytest.raises(NotFoundError):
            await repo.create(EventCreate(name="Meetup"), created_by=404)


class TestReadEvents:
    """Tests for event lookups."""

    @pytest.mark.asyncio
    async def test_get(self, graph, repo, event_props):
        graph.queue(event_record(event_props))

        event = await repo.get(10001)

        assert event.name == "Spring Meetup"
        assert event.created_by == 501

    @pytest.mark.asyncio
    async def test_get_missing(self, graph, repo):
        graph.queue(make_result(single=None))

        assert await repo.get(404) is None

    @pytest.mark.asyncio
    async def test_list_by_user(self, graph, repo, event_props):
        graph.queue(make_result(data=[{"event": event_props, "created_by": 501}]))

        events = await repo.list_by_user(501)

        assert [event.id for event in events] == [10001]
        assert graph.params(0) == {"user_id": 501}

    @pytest.mark.asyncio
    async def test_list_by_staff(self, graph, repo, event_props):
        graph.queue(make_result(data=[{"event": event_props, "created_by": 501}]))

        events = await repo.list_by_staff(777)

        assert events[0].created_by == 501
        assert "STAFF_FOR" in graph.queries[0]

    @pytest.mark.asyncio
    async def test_ensure_owner(self, graph, repo, event_props):
        graph.queue(event_record(event_props))

        assert (await repo.ensure_owner(10001, 501)).id == 10001

    @pytest.mark.asyncio
    async def test_ensure_owner_forbidden(self, graph, repo, event_props):
        graph.queue(event_record(event_props))

        with pytest.raises(ForbiddenError):
            await repo.ensure_owner(10001, 999)


class TestUpdateEvent:
    """Tests for event updates."""

    @pytest.mark.asyncio
    async def test_omitted_fields_become_empty(self, graph, repo, event_props):
        graph.queue(event_record(event_props), make_result())

        await repo.update(10001, EventUpdate(name="Renamed"), owner_id=501)

        props = graph.params(1)["props"]
        assert props["name"] == "Renamed"
        assert props["location"] == ""
        assert props["dateTime"] == ""

    @pytest.mark.asyncio
    async def test_update_forbidden(self, graph, repo, event_props):
        graph.queue(event_record(event_props))

        with pytest.raises(ForbiddenError):
            await repo.update(10001, EventUpdate(name="x"), owner_id=999)

        assert len(graph.queries) == 1

    @pytest.mark.parametrize("status", ["finished", "UPCOMING", EventStatus.IN_PROGRESS])
    @pytest.mark.asyncio
    async def test_update_status_any_transition(self, graph, repo, event_props, status):
        graph.queue(event_record(event_props), make_result())

        await repo.update_status(10001, status)

        assert graph.params(1)["status"] == EventStatus.parse(status).value

    @pytest.mark.asyncio
    async def test_update_status_unknown(self, graph, repo):
        with pytest.raises(InvalidInputError):
            await repo.update_status(10001, "postponed")

        graph.tx.run.assert_not_awaited()


class TestDeleteEvent:
    """Tests for deleting events with cascade."""

    @pytest.mark.asyncio
    async def test_upcoming_with_invited_participant_conflicts(self, graph, repo):
        graph.queue(make_result(single={"status": "upcoming", "created_by": 501, "invited": 1}))

        with pytest.raises(ConflictError):
            await repo.delete(10001, owner_id=501)

        assert len(graph.queries) == 1
        graph.tx.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upcoming_without_invited_cascades(self, graph, repo):
        """Forms and participant data are deleted with the event.

        Only the issued Cypher is checked here; the graph session is mocked.
        """
        graph.queue(
            make_result(single={"status": "upcoming", "created_by": 501, "invited": 0}),
            make_result(),
        )

        await repo.delete(10001, owner_id=501)

        query = graph.queries[1]
        assert "FOREACH (n IN participants | DETACH DELETE n)" in query
        assert "FOREACH (n IN forms | DETACH DELETE n)" in query
        assert "DETACH DELETE e" in query
        graph.tx.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_finished_deletes_unconditionally(self, graph, repo):
        graph.queue(
            make_result(single={"status": "finished", "created_by": 501, "invited": 5}),
            make_result(),
        )

        await repo.delete(10001)

        assert len(graph.queries) == 2

    @pytest.mark.asyncio
    async def test_delete_missing(self, graph, repo):
        graph.queue(make_result(single=None))

        with pytest.raises(NotFoundError):
            await repo.delete(404)

    @pytest.mark.asyncio
    async def test_delete_forbidden(self, graph, repo):
        graph.queue(make_result(single={"status": "finished", "created_by": 501, "invited": 0}))

        with pytest.raises(ForbiddenError):
            await repo.delete(10001, owner_id=999)
