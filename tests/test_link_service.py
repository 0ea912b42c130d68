"""
Tests for wikideceased/pipeline (LinkClassificationService and ClassificationSession).

## Test Perspectives Table
| Case ID | Input / Precondition | Perspective (Equivalence / Boundary) | Expected Result | Notes |
|---------|----------------------|---------------------------------------|-----------------|-------|
| TC-LS-N-01 | Deceased + living links | Equivalence – normal | Only deceased decorated | - |
| TC-LS-N-02 | Two links, same title | Equivalence – dedup | One request, both decorated | - |
| TC-LS-A-01 | Lookup fails | Abnormal – UNKNOWN | Link untouched | - |
| TC-LS-B-01 | Preview link | Boundary – preview | Marked, never requested | - |
| TC-LS-B-02 | Namespaced / foreign link | Boundary – rejected | Marked, never requested | - |
| TC-LS-B-03 | Resubmission | Boundary – idempotence | No-op | - |
| TC-LS-N-03 | 25 links, batch size 10 | Equivalence – batching | 3 batches, all requested | - |
| TC-LS-N-04 | Change feed | Equivalence – insertions | Inserted links classified | - |
| TC-CS-N-01 | Session with JsonFileStore | Equivalence – wiring | Cache persisted and reloaded | - |
"""

from pathlib import Path

import pytest
from bs4 import BeautifulSoup

from wikideceased.links import PreviewFilter, SoupLinkSource, StaticLinkHandle
from wikideceased.pipeline import ClassificationSession, LinkClassificationService
from wikideceased.storage import JsonFileStore, ResultCache
from wikideceased.utils.config import DEFAULT_PREVIEW_SELECTORS, ServiceConfig, get_settings
from wikideceased.utils.schemas import Outcome

pytestmark = pytest.mark.integration

ORIGIN = "https://en.wikipedia.org"


class RecordingDecorator:
    def __init__(self) -> None:
        self.links: list = []

    def __call__(self, link) -> None:
        self.links.append(link)


def _service(scheduler, decorate, *, batch_size: int = 10, is_preview=None):
    return LinkClassificationService(
        scheduler,
        decorate,
        origin=ORIGIN,
        config=ServiceConfig(batch_size=batch_size),
        is_preview=is_preview,
    )


class TestLinkClassificationService:
    """Tests for LinkClassificationService."""

    @pytest.mark.asyncio
    async def test_only_deceased_links_are_decorated(
        self, fake_client_factory, make_scheduler, deceased_payload, living_payload
    ) -> None:
        """Given: links to a deceased subject, a living subject and a missing page
        When: they are submitted and the service is joined
        Then: only the deceased link is decorated, exactly once
        """
        client = fake_client_factory({"John_Doe": deceased_payload, "Jane_Roe": living_payload})
        scheduler = make_scheduler(client)
        decorate = RecordingDecorator()
        service = _service(scheduler, decorate)
        dead = StaticLinkHandle("/wiki/John_Doe")
        alive = StaticLinkHandle("/wiki/Jane_Roe")
        missing = StaticLinkHandle("/wiki/Nobody")

        accepted = service.submit([dead, alive, missing])
        await service.join()

        assert accepted == 3
        assert decorate.links == [dead]
        assert all(link.is_processed() for link in (dead, alive, missing))
        assert scheduler.cache.get("Nobody") is None
        assert service.stats()["decorated"] == 1

    @pytest.mark.asyncio
    async def test_links_sharing_a_title_share_one_request(
        self, fake_client_factory, make_scheduler, deceased_payload
    ) -> None:
        client = fake_client_factory({"John_Doe": deceased_payload})
        decorate = RecordingDecorator()
        service = _service(make_scheduler(client), decorate)
        first = StaticLinkHandle("/wiki/John_Doe")
        second = StaticLinkHandle("https://en.wikipedia.org/wiki/John%20Doe")

        service.submit([first, second])
        await service.join()

        assert client.calls == ["John_Doe"]
        assert decorate.links == [first, second]

    @pytest.mark.asyncio
    async def test_cached_outcome_decorates_without_request(
        self, fake_client_factory, make_scheduler
    ) -> None:
        client = fake_client_factory()
        cache = ResultCache()
        cache.put("Ada_Lovelace", Outcome.DECEASED)
        decorate = RecordingDecorator()
        service = _service(make_scheduler(client, cache=cache), decorate)
        link = StaticLinkHandle("/wiki/Ada_Lovelace")

        service.submit([link])
        await service.join()

        assert client.calls == []
        assert decorate.links == [link]

    @pytest.mark.asyncio
    async def test_preview_links_are_consumed_without_request(
        self, fake_client_factory, make_scheduler, deceased_payload
    ) -> None:
        """Given: an article link inside a .mwe-popups container
        When: submitted
        Then: the link is marked processed, never requested, never decorated
        """
        soup = BeautifulSoup(
            '<body><div class="mwe-popups"><a href="/wiki/John_Doe">JD</a></div>'
            '<p><a href="/wiki/John_Doe">JD</a></p></body>',
            "html.parser",
        )
        client = fake_client_factory({"John_Doe": deceased_payload})
        decorate = RecordingDecorator()
        service = _service(
            make_scheduler(client),
            decorate,
            is_preview=PreviewFilter(DEFAULT_PREVIEW_SELECTORS),
        )
        popup, body_link = SoupLinkSource(soup).discover()

        accepted = service.submit([popup, body_link])
        await service.join()

        assert accepted == 1
        assert popup.is_processed()
        assert decorate.links == [body_link]
        assert service.stats()["skipped_preview"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "href",
        [
            "/wiki/Talk:John_Doe",
            "/wiki/John_Doe#Career",
            "/w/index.php?title=Missing&action=edit&redlink=1",
            "https://de.wikipedia.org/wiki/John_Doe",
            None,
        ],
    )
    async def test_rejected_links_are_marked_and_never_requested(
        self, fake_client_factory, make_scheduler, href
    ) -> None:
        client = fake_client_factory()
        service = _service(make_scheduler(client), RecordingDecorator())
        link = StaticLinkHandle(href)

        accepted = service.submit([link])
        await service.join()

        assert accepted == 0
        assert link.is_processed()
        assert client.calls == []
        assert service.stats()["rejected"] == 1

    @pytest.mark.asyncio
    async def test_resubmission_is_a_noop(
        self, fake_client_factory, make_scheduler, deceased_payload
    ) -> None:
        """Given: a link already submitted once
        When: the same link is submitted again, before and after completion
        Then: nothing is requested or decorated again
        """
        client = fake_client_factory({"John_Doe": deceased_payload})
        decorate = RecordingDecorator()
        service = _service(make_scheduler(client), decorate)
        link = StaticLinkHandle("/wiki/John_Doe")

        service.submit([link])
        assert service.submit([link]) == 0
        await service.join()
        assert service.submit([link]) == 0
        await service.join()

        assert client.calls == ["John_Doe"]
        assert decorate.links == [link]

    @pytest.mark.asyncio
    async def test_links_are_split_into_batches(
        self, fake_client_factory, make_scheduler, living_payload
    ) -> None:
        titles = [f"Person_{i}" for i in range(25)]
        client = fake_client_factory({title: living_payload for title in titles})
        scheduler = make_scheduler(client, max_concurrent=2)
        service = _service(scheduler, RecordingDecorator(), batch_size=10)

        accepted = service.submit([StaticLinkHandle(f"/wiki/{t}") for t in titles])
        batches = len(service._batch_tasks)
        await service.join()

        assert accepted == 25
        assert batches == 3
        assert sorted(client.calls) == sorted(titles)
        assert client.max_in_flight <= 2
        assert service.stats()["requested"] == 25

    @pytest.mark.asyncio
    async def test_consume_classifies_inserted_links(
        self, fake_client_factory, make_scheduler, deceased_payload
    ) -> None:
        """Given: a document whose initial links were already handled
        When: new content is inserted and the change feed is consumed
        Then: the inserted links are classified and decorated
        """
        soup = BeautifulSoup('<html><body><a href="/wiki/Jane_Roe">JR</a></body></html>', "html.parser")
        source = SoupLinkSource(soup)
        client = fake_client_factory({"John_Doe": deceased_payload})
        decorate = RecordingDecorator()
        service = _service(make_scheduler(client), decorate)

        service.submit(source.discover())
        source.insert('<p>See <a href="/wiki/John_Doe">John Doe</a>.</p>')
        source.close()
        await service.consume(source.changes())
        await service.join()

        assert [link.href for link in decorate.links] == ["/wiki/John_Doe"]
        assert sorted(client.calls) == ["Jane_Roe", "John_Doe"]


class TestClassificationSession:
    """Tests for ClassificationSession wiring."""

    @pytest.mark.asyncio
    async def test_session_persists_and_reloads_cache(
        self, tmp_path: Path, fake_client_factory, deceased_payload
    ) -> None:
        """Given: a session backed by a JSON session file
        When: a deceased subject is classified and a new session is opened
        Then: the new session answers from the cache without a request
        """
        settings = get_settings()
        store = JsonFileStore(tmp_path / "session.json")
        client = fake_client_factory({"John_Doe": deceased_payload})

        async with ClassificationSession(settings, store=store, client=client) as session:
            assert await session.scheduler.request("John_Doe") is Outcome.DECEASED
        assert client.closed

        second_client = fake_client_factory()
        async with ClassificationSession(settings, store=store, client=second_client) as session:
            assert session.cache.get("John_Doe") is Outcome.DECEASED
            assert await session.scheduler.request("John_Doe") is Outcome.DECEASED
        assert second_client.calls == []

    @pytest.mark.asyncio
    async def test_create_service_decorates_soup(
        self, tmp_path: Path, fake_client_factory, deceased_payload
    ) -> None:
        soup = BeautifulSoup(
            '<html><body><a href="/wiki/John_Doe">John Doe</a>'
            '<div class="navbox"><a href="/wiki/John_Doe">nav</a></div></body></html>',
            "html.parser",
        )
        client = fake_client_factory({"John_Doe": deceased_payload})

        async with ClassificationSession(
            get_settings(), store=JsonFileStore(tmp_path / "s.json"), client=client
        ) as session:
            service = session.create_service()
            service.submit(SoupLinkSource(soup).discover())
            await service.join()

        body_link, nav_link = soup.find_all("a")
        assert "wikideceased" in body_link["class"]
        assert body_link["title"] == "deceased"
        assert nav_link.get("class") is None
        assert nav_link["data-processed"] == "true"
