# pawmatch/matching/test_ranking.py
from pawmatch.matching.ranking import DistanceRanker, format_distance


def test_format_distance():
    assert format_distance(0.14387) == "0.1 km"
    assert format_distance(12.96) == "13.0 km"
    assert format_distance(None) is None


def test_rank_sorts_by_distance_then_id_with_unknown_last(make_pet):
    far = make_pet("far", found_at=(34.80, 32.10))
    near_b = make_pet("near-b", found_at=(34.7790, 32.0670))
    near_a = make_pet("near-a", found_at=(34.7790, 32.0670))
    unknown = make_pet("unknown")

    ranked = DistanceRanker().rank([unknown, far, near_b, near_a], 32.0662, 34.7778)

    assert [r.record.pet_id for r in ranked] == ["near-a", "near-b", "far", "unknown"]
    assert ranked[-1].distance_km is None
    assert ranked[0].distance_km < ranked[2].distance_km


def test_distance_uses_resolved_location_not_base(make_pet):
    # 기본 위치는 중심과 같지만 발견 위치가 멀리 있으면 발견 위치 기준으로 계산합니다.
    pet = make_pet("p1", base=(34.7778, 32.0662), found_at=(35.2137, 31.7683))

    distance = DistanceRanker().distance_to(pet, 32.0662, 34.7778)

    assert distance > 40


def test_paginate_after_sorting(make_pet):
    pets = [make_pet(f"p{i}", found_at=(34.7778 + i * 0.01, 32.0662)) for i in range(5)]
    ranked = DistanceRanker().rank(reversed(pets), 32.0662, 34.7778)

    page = DistanceRanker.paginate(ranked, offset=2, limit=2)

    assert [r.record.pet_id for r in page] == ["p2", "p3"]
    assert DistanceRanker.paginate(ranked, offset=10, limit=2) == []
