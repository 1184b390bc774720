# pawmatch/matching/test_orchestrator.py
import logging

import pytest

from pawmatch.models.pet import MatchResult
from pawmatch.matching import (
    MatchOrchestrator, AttributeMatcher, ProximitySearch, DistanceRanker, SearchQuery, PetNotFoundError
)
from pawmatch.services.memory_pet_store import InMemoryPetStore


class BrokenBulkStore(InMemoryPetStore):
    def bulk_pull(self, pet_filter, array_field, sub_filter):
        raise RuntimeError("transaction aborted")


def _orchestrator(store):
    return MatchOrchestrator(store, AttributeMatcher(threshold=3.0), ProximitySearch(store), DistanceRanker())


@pytest.fixture
def orchestrator(store):
    return _orchestrator(store)


def test_tel_aviv_scenario(store, orchestrator, make_pet):
    store.insert(make_pet("A", last_seen=(34.7790, 32.0670)))
    store.insert(make_pet("B", found_at=(34.7795, 32.0675)))

    page = orchestrator.search(SearchQuery(lat=32.0662, lng=34.7778, radius_km=5))

    assert [item.record.pet_id for item in page.items] == ["A", "B"]
    assert page.items[0].distance_km < page.items[1].distance_km < 0.25
    assert page.total == 2
    assert not page.has_more


def test_geo_search_paginates_after_ranking(store, orchestrator, make_pet):
    for i in range(5):
        store.insert(make_pet(f"p{i}", found_at=(34.7778 + (4 - i) * 0.002, 32.0662)))

    page = orchestrator.search(SearchQuery(lat=32.0662, lng=34.7778, radius_km=5, limit=2, offset=0))

    assert [item.record.pet_id for item in page.items] == ["p4", "p3"]
    assert page.total == 5
    assert page.has_more


def test_non_geo_search_filters_lost_or_found_and_name(store, orchestrator, make_pet):
    store.insert(make_pet("p1", name="Rex", last_seen=(34.78, 32.07)))
    store.insert(make_pet("p2", name="Rexy", found_at=(34.78, 32.07)))
    store.insert(make_pet("p3", name="Rex at home"))

    page = orchestrator.search(SearchQuery(name_contains="rex"))

    assert sorted(item.record.pet_id for item in page.items) == ["p1", "p2"]
    assert all(item.distance_km is None for item in page.items)
    assert page.total == 2


def test_dog_draft_against_cats_only_store_is_empty(store, orchestrator, make_pet):
    store.insert(make_pet("cat-1", species="cat", breed="Persian", last_seen=(34.78, 32.07)))
    store.insert(make_pet("cat-2", species="cat", last_seen=(34.79, 32.08)))

    draft = {"species": "dog", "breed": "Persian", "location": {"coordinates": [34.78, 32.07]}}

    assert orchestrator.find_candidates(draft) == []


def test_find_candidates_only_considers_lost_records(store, orchestrator, make_pet):
    store.insert(make_pet("lost", breed="Beagle", last_seen=(34.78, 32.07)))
    store.insert(make_pet("found", breed="Beagle", found_at=(34.78, 32.07)))
    store.insert(make_pet("weak", fur_color="black", last_seen=(34.78, 32.07)))

    draft = {"species": "dog", "breed": "beagle", "fur_color": "white", "location": {"coordinates": [34.78, 32.07]}}
    candidates = orchestrator.find_candidates(draft)

    assert [c.lost_record.pet_id for c in candidates] == ["lost"]
    assert candidates[0].score == 4.0


def test_list_my_matches_pairs_own_lost_with_found(store, orchestrator, make_pet):
    store.insert(make_pet("mine", owner_id="owner-1", breed="Poodle", last_seen=(34.78, 32.07)))
    store.insert(make_pet("someone-else", owner_id="owner-2", breed="Poodle", last_seen=(34.78, 32.07)))
    store.insert(make_pet("found-poodle", owner_id="owner-3", breed="Poodle", found_at=(34.78, 32.07)))
    store.insert(make_pet("found-cat", owner_id="owner-3", species="cat", found_at=(34.78, 32.07)))

    matches = orchestrator.list_my_matches("owner-1")

    assert [(m.lost_id, m.found_id) for m in matches] == [("mine", "found-poodle")]
    assert matches[0].score == 4.0


def test_list_my_matches_warns_on_large_cross_product(store, make_pet, caplog):
    store.insert(make_pet("mine", owner_id="owner-1", last_seen=(34.78, 32.07)))
    store.insert(make_pet("found-1", owner_id="owner-2", found_at=(34.78, 32.07)))
    store.insert(make_pet("found-2", owner_id="owner-2", found_at=(34.78, 32.07)))
    orchestrator = MatchOrchestrator(store, AttributeMatcher(threshold=3.0), ProximitySearch(store),
                                     DistanceRanker(), cross_product_warn_limit=1)

    with caplog.at_level(logging.WARNING):
        orchestrator.list_my_matches("owner-1")

    assert "cross-product is large: 1 x 2" in caplog.text


def test_confirm_match_clears_flags_and_stale_references(store, orchestrator, make_pet):
    store.insert(make_pet("lost", owner_id="owner-1", last_seen=(34.78, 32.07),
                          match_results=[MatchResult(pet_id="found", score=5)]))
    store.insert(make_pet("found", owner_id="owner-2", found_at=(34.78, 32.07)))
    store.insert(make_pet("other", owner_id="owner-3", last_seen=(34.79, 32.08),
                          match_results=[MatchResult(pet_id="found", score=4), MatchResult(pet_id="x", score=3)]))

    result = orchestrator.confirm_match("lost", "found", "owner-1")

    assert result.others_cleared
    assert result.cleared_count == 1
    confirmed = store.get("lost")
    assert not confirmed.is_lost and not confirmed.is_found
    assert confirmed.match_results == []
    assert store.get("other").match_pet_ids == ["x"]
    # 발견 레코드는 다른 소유자의 것이므로 건드리지 않습니다.
    assert store.get("found").is_found


def test_confirm_match_requires_ownership(store, orchestrator, make_pet):
    store.insert(make_pet("lost", owner_id="owner-1", last_seen=(34.78, 32.07)))
    store.insert(make_pet("found", owner_id="owner-2", found_at=(34.78, 32.07)))

    with pytest.raises(PermissionError):
        orchestrator.confirm_match("lost", "found", "owner-2")
    assert store.get("lost").is_lost


def test_confirm_match_unknown_records(store, orchestrator, make_pet):
    store.insert(make_pet("lost", owner_id="owner-1", last_seen=(34.78, 32.07)))

    with pytest.raises(PetNotFoundError):
        orchestrator.confirm_match("missing", "found", "owner-1")
    with pytest.raises(PetNotFoundError):
        orchestrator.confirm_match("lost", "missing", "owner-1")


def test_bulk_failure_is_logged_and_reported(make_pet, caplog):
    store = BrokenBulkStore()
    store.insert(make_pet("lost", owner_id="owner-1", last_seen=(34.78, 32.07)))
    store.insert(make_pet("found", owner_id="owner-2", found_at=(34.78, 32.07)))

    with caplog.at_level(logging.ERROR):
        result = _orchestrator(store).confirm_match("lost", "found", "owner-1")

    assert not result.others_cleared
    assert not store.get("lost").is_lost
    assert "Failed to clear stale match results" in caplog.text
