import httpx
import pytest

from facultrack.models import ProvenanceTag
from facultrack.services.indexing import (
    SCOPUS_MAX_RESULTS,
    SCOPUS_PAGE_SIZE,
    ScopusSource,
    WosSource,
    parse_scopus_entry,
)
from facultrack.services.openalex import OpenAlexClient
from facultrack.services.orcid import OrcidClient, RegistryError
from facultrack.settings import Settings

ORCID_ID = "0000-0002-1825-0097"

PERSON = {
    "name": {"given-names": {"value": "Ada"}, "family-name": {"value": "Lovelace"}},
    "addresses": {"address": [{"country": {"value": "GB"}}]},
    "biography": {"content": "Mathematician."},
}

WORKS = {
    "group": [
        {
            "work-summary": [
                {
                    "put-code": 101,
                    "title": {"title": {"value": "Sketch of the Analytical Engine"}},
                    "publication-date": {"year": {"value": "2019"}},
                    "journal-title": {"value": "Scientific Memoirs"},
                    "type": "journal_article",
                    "url": None,
                    "external-ids": {
                        "external-id": [
                            {
                                "external-id-type": "doi",
                                "external-id-value": "10.1/sketch",
                                "external-id-url": {"value": "https://doi.org/10.1/sketch"},
                            },
                            {"external-id-type": "eid", "external-id-value": "2-s2.0-1"},
                        ]
                    },
                }
            ]
        },
        {
            "work-summary": [
                {
                    "put-code": 102,
                    "title": {"title": {"value": "Undated Letter"}},
                    "publication-date": None,
                    "type": "other",
                    "external-ids": {"external-id": [{"external-id-type": "wosuid", "external-id-value": "W1"}]},
                }
            ]
        },
        {
            "work-summary": [
                {
                    "put-code": 103,
                    "title": {"title": {"value": "Later Note"}},
                    "publication-date": {"year": {"value": "2022"}},
                }
            ]
        },
    ]
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_orcid_profile_parsing(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/person"):
            return httpx.Response(200, json=PERSON)
        return httpx.Response(200, json=WORKS)

    async with _client(handler) as client:
        orcid = OrcidClient(client=client, settings=Settings(data_dir=tmp_path))
        profile = await orcid.fetch_profile(ORCID_ID, "Professor", "Mathematics")

    assert profile.name == "Ada Lovelace"
    assert profile.country == "GB"
    assert profile.biography == "Mathematician."
    assert [record.year for record in profile.publications] == [2022, 2019, 0]
    sketch = profile.publications[1]
    assert sketch.doi == "10.1/sketch"
    assert sketch.url == "https://doi.org/10.1/sketch"
    assert sketch.work_type == "journal article"
    assert sketch.external_id == "101"
    assert sketch.sources == {ProvenanceTag.ORCID, ProvenanceTag.SCOPUS}
    assert profile.publications[2].sources == {ProvenanceTag.ORCID, ProvenanceTag.WOS}
    assert profile.publications[0].work_type == "unknown"


@pytest.mark.asyncio
async def test_orcid_failure_raises_registry_error(tmp_path) -> None:
    async with _client(lambda request: httpx.Response(500)) as client:
        orcid = OrcidClient(client=client, settings=Settings(data_dir=tmp_path))
        with pytest.raises(RegistryError):
            await orcid.fetch_profile(ORCID_ID)


@pytest.mark.asyncio
async def test_orcid_affiliation_search(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/search"):
            assert 'affiliation-org-name:"Kyiv University"' in request.url.params["q"]
            return httpx.Response(
                200,
                json={
                    "result": [
                        {"orcid-identifier": {"path": ORCID_ID}},
                        {"orcid-identifier": {"path": "0000-0001-5109-3700"}},
                    ]
                },
            )
        if ORCID_ID in request.url.path:
            return httpx.Response(200, json=PERSON)
        return httpx.Response(404)

    async with _client(handler) as client:
        orcid = OrcidClient(client=client, settings=Settings(data_dir=tmp_path))
        hits = await orcid.search_by_affiliation("Kyiv University")

    assert [(hit.orcid_id, hit.name) for hit in hits] == [
        (ORCID_ID, "Ada Lovelace"),
        ("0000-0001-5109-3700", "Unknown"),
    ]


AUTHOR = {
    "summary_stats": {"h_index": 12, "i10_index": 15, "2yr_cited_by_count": 40},
    "cited_by_count": 999,
    "x_concepts": [
        {"display_name": "Biology", "level": 0, "score": 20.0},
        {"display_name": "Niche", "level": 3, "score": 90.0},
        {"display_name": "Computer science", "level": 0, "score": 80.0},
    ],
    "last_known_institutions": [{"display_name": "University of London"}],
    "counts_by_year": [
        {"year": 2024, "cited_by_count": 30, "works_count": 2},
        {"year": 2022, "cited_by_count": 10, "works_count": 1},
    ],
}

TOP_WORKS = {
    "results": [
        {
            "title": "Top Paper",
            "publication_year": 2020,
            "cited_by_count": 50,
            "open_access": {"is_oa": True},
            "primary_location": {"source": {"display_name": "Nature"}},
            "doi": "https://doi.org/10.5/top",
        }
    ]
}


@pytest.mark.asyncio
async def test_openalex_metrics_bundle(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["mailto"] == "admin@example.com"
        if "/authors/" in request.url.path:
            return httpx.Response(200, json=AUTHOR)
        return httpx.Response(200, json=TOP_WORKS)

    async with _client(handler) as client:
        openalex = OpenAlexClient(client=client, settings=Settings(data_dir=tmp_path))
        metrics = await openalex.fetch_metrics(ORCID_ID)
        stats = await openalex.author_stats(ORCID_ID)

    assert metrics is not None
    assert metrics.h_index == 12
    assert metrics.citation_count_2yr == 40
    assert [topic.name for topic in metrics.topics] == ["Computer science", "Biology"]
    assert [stat.year for stat in metrics.yearly_stats] == [2022, 2024]
    assert metrics.institutions == ["University of London"]
    assert metrics.top_works[0].doi == "10.5/top"
    assert metrics.top_works[0].is_oa
    assert stats["top_topics"] == ["Computer science", "Biology"]
    assert stats["yearly_trend"][-1]["citations"] == 30


@pytest.mark.asyncio
async def test_openalex_not_found_returns_none(tmp_path) -> None:
    async with _client(lambda request: httpx.Response(404)) as client:
        openalex = OpenAlexClient(client=client, settings=Settings(data_dir=tmp_path))
        assert await openalex.fetch_metrics(ORCID_ID) is None
        assert await openalex.author_stats(ORCID_ID) == {"error": "Author not found"}
        assert await openalex.search_works("anything") == []


@pytest.mark.asyncio
async def test_openalex_search_works_filters(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["filter"] == "default.search:ethics,publication_year:2024"
        return httpx.Response(200, json=TOP_WORKS)

    async with _client(handler) as client:
        openalex = OpenAlexClient(client=client, settings=Settings(data_dir=tmp_path))
        works = await openalex.search_works("ethics", 2024)

    assert works == [
        {
            "title": "Top Paper",
            "year": 2020,
            "citations": 50,
            "doi": "https://doi.org/10.5/top",
            "journal": "Nature",
        }
    ]


@pytest.mark.asyncio
async def test_indexing_sources_simulate_without_keys(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - must not be called
        raise AssertionError("simulation mode should not hit the network")

    settings = Settings(data_dir=tmp_path)
    async with _client(handler) as client:
        scopus = await ScopusSource(client=client, settings=settings).fetch(ORCID_ID)
        wos = await WosSource(client=client, settings=settings).fetch(ORCID_ID)

    assert len(scopus) == 2
    assert all(record.sources == {ProvenanceTag.SCOPUS} for record in scopus)
    assert len(wos) == 1
    assert wos[0].citation_count == 8


@pytest.mark.asyncio
async def test_scopus_errors_yield_empty_list(tmp_path) -> None:
    settings = Settings(data_dir=tmp_path, scopus_api_key="key")
    async with _client(lambda request: httpx.Response(401)) as client:
        assert await ScopusSource(client=client, settings=settings).fetch(ORCID_ID) == []


def test_parse_scopus_entry() -> None:
    record = parse_scopus_entry(
        {
            "dc:title": "Indexed Paper",
            "prism:coverDate": "2021-05-01",
            "prism:publicationName": "Journal of Tests",
            "subtypeDescription": "Article",
            "prism:doi": "10.7/idx",
            "eid": "2-s2.0-99",
            "citedby-count": "17",
        }
    )
    assert record.year == 2021
    assert record.citation_count == 17
    assert record.work_type == "article"
    assert record.external_id == "2-s2.0-99"


@pytest.mark.asyncio
async def test_orcid_non_json_body_raises_registry_error(tmp_path) -> None:
    async with _client(lambda request: httpx.Response(200, text="<html>maintenance</html>")) as client:
        orcid = OrcidClient(client=client, settings=Settings(data_dir=tmp_path))
        with pytest.raises(RegistryError, match="Malformed ORCID response"):
            await orcid.fetch_profile(ORCID_ID)


@pytest.mark.asyncio
async def test_orcid_malformed_works_raise_registry_error(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/person"):
            return httpx.Response(200, json=PERSON)
        return httpx.Response(200, json={"group": [{"work-summary": "not-a-list"}]})

    async with _client(handler) as client:
        orcid = OrcidClient(client=client, settings=Settings(data_dir=tmp_path))
        with pytest.raises(RegistryError):
            await orcid.fetch_profile(ORCID_ID)


@pytest.mark.asyncio
async def test_orcid_search_with_malformed_results_is_empty(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json={"result": [{"relevancy": 1}]})
        raise AssertionError("no person lookups expected")

    async with _client(handler) as client:
        orcid = OrcidClient(client=client, settings=Settings(data_dir=tmp_path))
        assert await orcid.search_by_affiliation("Kyiv University") == []


@pytest.mark.asyncio
async def test_orcid_search_name_lookup_tolerates_non_json(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json={"result": [{"orcid-identifier": {"path": ORCID_ID}}]})
        return httpx.Response(200, text="oops")

    async with _client(handler) as client:
        orcid = OrcidClient(client=client, settings=Settings(data_dir=tmp_path))
        hits = await orcid.search_by_affiliation("Kyiv University")

    assert [(hit.orcid_id, hit.name) for hit in hits] == [(ORCID_ID, "Unknown")]


@pytest.mark.asyncio
async def test_openalex_non_json_body_degrades(tmp_path) -> None:
    async with _client(lambda request: httpx.Response(200, text="oops")) as client:
        openalex = OpenAlexClient(client=client, settings=Settings(data_dir=tmp_path))
        assert await openalex.fetch_metrics(ORCID_ID) is None
        assert await openalex.author_stats(ORCID_ID) == {"error": "Author not found"}
        assert await openalex.search_works("anything") == []


@pytest.mark.asyncio
async def test_openalex_yearly_count_without_year_returns_none(tmp_path) -> None:
    author = {**AUTHOR, "counts_by_year": [{"cited_by_count": 3, "works_count": 1}]}
    async with _client(lambda request: httpx.Response(200, json=author)) as client:
        openalex = OpenAlexClient(client=client, settings=Settings(data_dir=tmp_path))
        assert await openalex.fetch_metrics(ORCID_ID) is None


@pytest.mark.asyncio
async def test_openalex_bad_top_works_keeps_metrics(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "/authors/" in request.url.path:
            return httpx.Response(200, json=AUTHOR)
        return httpx.Response(200, text="oops")

    async with _client(handler) as client:
        openalex = OpenAlexClient(client=client, settings=Settings(data_dir=tmp_path))
        metrics = await openalex.fetch_metrics(ORCID_ID)

    assert metrics is not None
    assert metrics.h_index == 12
    assert metrics.top_works == []
    assert metrics.last_updated.tzinfo is not None


@pytest.mark.asyncio
async def test_scopus_non_json_body_yields_empty_list(tmp_path) -> None:
    settings = Settings(data_dir=tmp_path, scopus_api_key="key")
    async with _client(lambda request: httpx.Response(200, text="<html>quota</html>")) as client:
        assert await ScopusSource(client=client, settings=settings).fetch(ORCID_ID) == []


@pytest.mark.asyncio
async def test_scopus_bad_citation_count_yields_empty_list(tmp_path) -> None:
    payload = {
        "search-results": {
            "opensearch:totalResults": "1",
            "entry": [{"dc:title": "Indexed Paper", "citedby-count": "n/a"}],
        }
    }
    settings = Settings(data_dir=tmp_path, scopus_api_key="key")
    async with _client(lambda request: httpx.Response(200, json=payload)) as client:
        assert await ScopusSource(client=client, settings=settings).fetch(ORCID_ID) == []


def _scopus_page(start: int, count: int, total: int) -> dict:
    stop = min(start + count, total)
    return {
        "search-results": {
            "opensearch:totalResults": str(total),
            "entry": [
                {"dc:title": f"Paper {index}", "eid": f"2-s2.0-{index}", "citedby-count": "1"}
                for index in range(start, stop)
            ],
        }
    }


@pytest.mark.asyncio
async def test_scopus_pages_through_results(tmp_path) -> None:
    requests: list[tuple[int, int]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        start = int(request.url.params["start"])
        count = int(request.url.params["count"])
        requests.append((start, count))
        return httpx.Response(200, json=_scopus_page(start, count, total=30))

    settings = Settings(data_dir=tmp_path, scopus_api_key="key")
    async with _client(handler) as client:
        records = await ScopusSource(client=client, settings=settings).fetch(ORCID_ID)

    assert requests == [(0, SCOPUS_PAGE_SIZE), (SCOPUS_PAGE_SIZE, SCOPUS_PAGE_SIZE)]
    assert len(records) == 30
    assert records[-1].external_id == "2-s2.0-29"


@pytest.mark.asyncio
async def test_scopus_stops_at_result_cap(tmp_path) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        start = int(request.url.params["start"])
        count = int(request.url.params["count"])
        return httpx.Response(200, json=_scopus_page(start, count, total=5000))

    settings = Settings(data_dir=tmp_path, scopus_api_key="key")
    async with _client(handler) as client:
        records = await ScopusSource(client=client, settings=settings).fetch(ORCID_ID)

    assert len(records) == SCOPUS_MAX_RESULTS
    assert calls == SCOPUS_MAX_RESULTS // SCOPUS_PAGE_SIZE


@pytest.mark.asyncio
async def test_scopus_failed_later_page_yields_empty_list(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        start = int(request.url.params["start"])
        if start:
            return httpx.Response(503)
        return httpx.Response(200, json=_scopus_page(start, SCOPUS_PAGE_SIZE, total=40))

    settings = Settings(data_dir=tmp_path, scopus_api_key="key")
    async with _client(handler) as client:
        assert await ScopusSource(client=client, settings=settings).fetch(ORCID_ID) == []
