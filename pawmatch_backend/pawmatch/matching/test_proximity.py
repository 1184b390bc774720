# pawmatch/matching/test_proximity.py
import pytest

from pawmatch.matching.errors import ProximitySearchError
from pawmatch.matching.proximity import ProximitySearch, GeoField, GeoShape, LOST_LAST_SEEN
from pawmatch.services.memory_pet_store import InMemoryPetStore
from pawmatch.services.pet_store import PetFilter

CENTER_LAT, CENTER_LNG = 32.0662, 34.7778
SEARCH_FILTER = PetFilter(lost_or_found=True)


class FailingLegacyStore(InMemoryPetStore):
    def within_center_sphere(self, field_path, center, radius_radians, pet_filter):
        raise ConnectionError("backend unavailable")


def _ids(records):
    return sorted(r.pet_id for r in records)


def test_record_matched_by_several_fields_appears_once(store, make_pet):
    store.insert(make_pet("both", base=(34.7780, 32.0665), found_at=(34.7785, 32.0668)))

    results = ProximitySearch(store).search(CENTER_LAT, CENTER_LNG, 5, SEARCH_FILTER)

    assert _ids(results) == ["both"]


def test_lost_record_found_only_through_legacy_pair(store, make_pet):
    # 기본 위치는 센티널, 마지막 목격 위치만 [lng, lat] 배열로 존재
    store.insert(make_pet("legacy", last_seen=(34.7790, 32.0670)))

    results = ProximitySearch(store).search(CENTER_LAT, CENTER_LNG, 5, SEARCH_FILTER)

    assert _ids(results) == ["legacy"]


def test_non_geo_filter_applies_to_every_field(store, make_pet):
    store.insert(make_pet("dog-lost", species="dog", last_seen=(34.7790, 32.0670)))
    store.insert(make_pet("cat-found", species="cat", found_at=(34.7795, 32.0675)))
    store.insert(make_pet("dog-home", species="dog", base=(34.7780, 32.0665)))  # 분실/발견 아님

    results = ProximitySearch(store).search(CENTER_LAT, CENTER_LNG, 5, PetFilter(species="dog", lost_or_found=True))

    assert _ids(results) == ["dog-lost"]


def test_records_outside_radius_are_excluded(store, make_pet):
    store.insert(make_pet("jerusalem", found_at=(35.2137, 31.7683)))
    store.insert(make_pet("near", found_at=(34.7795, 32.0675)))

    results = ProximitySearch(store).search(CENTER_LAT, CENTER_LNG, 5, SEARCH_FILTER)

    assert _ids(results) == ["near"]


def test_sentinel_coordinates_never_match(store, make_pet):
    # (0, 0) 근처를 검색해도 센티널 좌표는 결과에 포함되지 않습니다.
    store.insert(make_pet("unset", last_seen=(0, 0), found_at=(0, 0)))

    results = ProximitySearch(store).search(0.0, 0.0, 10, SEARCH_FILTER)

    assert results == []


def test_any_failing_subquery_fails_the_search(make_pet):
    store = FailingLegacyStore()
    store.insert(make_pet("near", found_at=(34.7795, 32.0675)))

    with pytest.raises(ProximitySearchError) as exc_info:
        ProximitySearch(store).search(CENTER_LAT, CENTER_LNG, 5, SEARCH_FILTER)

    assert exc_info.value.field_path == LOST_LAST_SEEN.path
    assert isinstance(exc_info.value.cause, ConnectionError)


def test_custom_geo_fields(store, make_pet):
    store.insert(make_pet("legacy", last_seen=(34.7790, 32.0670)))
    store.insert(make_pet("found", found_at=(34.7795, 32.0675)))

    only_found = ProximitySearch(store, geo_fields=[GeoField('found_details.location', GeoShape.POINT)], max_workers=1)

    assert _ids(only_found.search(CENTER_LAT, CENTER_LNG, 5, SEARCH_FILTER)) == ["found"]
