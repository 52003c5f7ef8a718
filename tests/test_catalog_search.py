import asyncio

from packages.domain.waste_matching.catalog_search import CatalogSearch
from packages.domain.waste_matching.catalog_store import InMemoryCatalogStore
from packages.domain.waste_matching.decision_log import DecisionLog
from packages.domain.waste_matching.schemas import CatalogEntry, CatalogField
from tests.stubs import FailingStore, SlowStore


class ExplodingStore:
    async def query_by_field(self, field, substring, limit):
        raise RuntimeError("connection reset")


def test_short_terms_are_skipped_and_logged(store):
    log = DecisionLog()
    outcome = asyncio.run(CatalogSearch(store).search(["ba", "bag"], log))

    assert outcome.attempted_terms == ["bag"]
    assert any("Skipped short terms: ba" in line for line in log.render())


def test_hits_are_deduplicated_by_id_across_terms(store):
    outcome = asyncio.run(CatalogSearch(store).search(["bag", "carrier bag", "shopping"], DecisionLog()))

    ids = [hit.entry.id for hit in outcome.hits]
    assert ids == ["1", "2", "3"]
    assert len(ids) == len(set(ids))


def test_hit_records_field_and_term(store):
    outcome = asyncio.run(CatalogSearch(store).search(["carrier"], DecisionLog()))

    assert len(outcome.hits) == 1
    hit = outcome.hits[0]
    assert hit.entry.id == "1"
    assert hit.match_field == CatalogField.SYNONYMS
    assert hit.match_term == "carrier"


def test_material_column_is_not_searched_by_identification(store):
    outcome = asyncio.run(CatalogSearch(store).search(["aluminium"], DecisionLog()))
    assert [hit.entry.name for hit in outcome.hits] == ["Aluminium foil"]


def test_per_term_limit_caps_hits(store):
    outcome = asyncio.run(CatalogSearch(store, per_term_limit=2).search(["bag"], DecisionLog()))
    assert len(outcome.hits) == 2


def test_max_terms_caps_processed_terms(store):
    terms = [f"term{i}" for i in range(12)]
    outcome = asyncio.run(CatalogSearch(store, max_terms=8).search(terms, DecisionLog()))
    assert outcome.attempted_terms == terms[:8]


def test_merge_order_ignores_completion_order(store):
    # "bag" finishes last but its hits still come first
    slow = SlowStore(store, delay=0.05, slow_terms={"bag"})
    outcome = asyncio.run(CatalogSearch(slow).search(["bag", "can"], DecisionLog()))
    assert [hit.entry.id for hit in outcome.hits] == ["1", "2", "3", "4"]


def test_failing_term_counts_as_zero_hits(store):
    log = DecisionLog()
    failing = FailingStore(store, failing_terms={"bag"})
    outcome = asyncio.run(CatalogSearch(failing).search(["bag", "can"], log))

    assert outcome.failed_terms == ["bag"]
    assert not outcome.all_failed
    assert [hit.entry.name for hit in outcome.hits] == ["Can"]
    assert any("Query for 'bag' failed" in line for line in log.render())


def test_timed_out_term_counts_as_zero_hits(store):
    log = DecisionLog()
    slow = SlowStore(store, delay=1.0, slow_terms={"bag"})
    outcome = asyncio.run(CatalogSearch(slow, query_timeout=0.05).search(["bag", "can"], log))

    assert outcome.failed_terms == ["bag"]
    assert [hit.entry.name for hit in outcome.hits] == ["Can"]
    assert any("timed out" in line for line in log.render())


def test_unexpected_store_error_is_a_term_failure():
    outcome = asyncio.run(CatalogSearch(ExplodingStore()).search(["bag"], DecisionLog()))
    assert outcome.failed_terms == ["bag"]
    assert outcome.all_failed


def test_cancelled_search_issues_no_queries(store):
    event = asyncio.Event()
    event.set()
    log = DecisionLog()
    outcome = asyncio.run(CatalogSearch(store).search(["bag"], log, cancel_event=event))

    assert outcome.cancelled
    assert outcome.hits == []
    assert outcome.failed_terms == []


def test_browse_searches_material_too(store):
    results = asyncio.run(CatalogSearch(store).browse("Alumin"))
    assert [entry.name for entry in results] == ["Aluminium foil", "Can"]


def test_browse_short_term_returns_nothing(store):
    assert asyncio.run(CatalogSearch(store).browse("b")) == []


def test_browse_caps_results():
    many = InMemoryCatalogStore(CatalogEntry(id=str(i), name=f"Bottle {i}") for i in range(25))

    results = asyncio.run(CatalogSearch(many).browse("bottle", limit=10))
    assert len(results) == 10
    assert results[0].id == "0"


def test_browse_failure_returns_empty(store):
    assert asyncio.run(CatalogSearch(FailingStore()).browse("bag")) == []
