# pawmatch/matching/scoring.py
"""
분실/발견 레코드 쌍의 속성 유사도 점수.

점수는 정렬에 쓰이는 전순서 값이며, 임계값(기본 3) 이상이면 '그럴듯한 매칭'입니다.
가중치와 임계값은 정책 값이므로 MatchWeights와 설정(MATCH_THRESHOLD)으로 조정합니다.
"""

from dataclasses import dataclass
from typing import Any, Optional

DEFAULT_MATCH_THRESHOLD = 3.0


@dataclass(frozen=True)
class MatchWeights:
    species: float = 2.0
    breed: float = 2.0
    fur_color: float = 1.0
    fur_color_partial: float = 0.5   # "dark brown" vs "brown"
    eye_color: float = 1.0
    age_close: float = 1.0           # 나이 차이 age_close_years 이내
    age_near: float = 0.5            # 나이 차이 age_near_years 이내
    age_close_years: float = 1.0
    age_near_years: float = 3.0


def _normalize(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


def _to_age(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        age = float(value)
    except (TypeError, ValueError):
        return None
    return age if age >= 0 else None


def _get(pet: Any, key: str) -> Any:
    """PetRecord와 요청 딕셔너리(draft)를 모두 지원합니다."""
    if isinstance(pet, dict):
        return pet.get(key)
    return getattr(pet, key, None)


class AttributeMatcher:
    def __init__(self, weights: Optional[MatchWeights] = None, threshold: float = DEFAULT_MATCH_THRESHOLD):
        self.weights = weights or MatchWeights()
        self.threshold = threshold

    def score(self, lost: Any, found: Any) -> float:
        w = self.weights

        species_lost, species_found = _normalize(_get(lost, 'species')), _normalize(_get(found, 'species'))
        # 종이 다르거나 알 수 없으면 다른 속성과 관계없이 0점
        if not species_lost or species_lost != species_found:
            return 0.0
        score = w.species

        breed_lost, breed_found = _normalize(_get(lost, 'breed')), _normalize(_get(found, 'breed'))
        if breed_lost and breed_lost == breed_found:
            score += w.breed

        score += self._color_score(_get(lost, 'fur_color'), _get(found, 'fur_color'))

        eye_lost, eye_found = _normalize(_get(lost, 'eye_color')), _normalize(_get(found, 'eye_color'))
        if eye_lost and eye_lost == eye_found:
            score += w.eye_color

        score += self._age_score(_get(lost, 'age'), _get(found, 'age'))
        return score

    def is_plausible(self, score: float) -> bool:
        return score >= self.threshold

    def _color_score(self, lost_color: Any, found_color: Any) -> float:
        a, b = _normalize(lost_color), _normalize(found_color)
        if not a or not b:
            return 0.0
        if a == b:
            return self.weights.fur_color
        if a in b or b in a:
            return self.weights.fur_color_partial
        return 0.0

    def _age_score(self, lost_age: Any, found_age: Any) -> float:
        a, b = _to_age(lost_age), _to_age(found_age)
        if a is None or b is None:
            return 0.0
        gap = abs(a - b)
        if gap <= self.weights.age_close_years:
            return self.weights.age_close
        if gap <= self.weights.age_near_years:
            return self.weights.age_near
        return 0.0
