# pawmatch/services/pet_store.py
"""
레코드 저장소 추상화.

매칭 엔진은 저장소를 '질의 가능한 컬렉션'으로만 다룹니다.
구현체: FirestorePetStore (운영), InMemoryPetStore (테스트/로컬 개발).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pawmatch.models.pet import PetRecord

LngLat = Tuple[float, float]

MATCH_RESULTS_FIELD = 'match_results'


@dataclass(frozen=True)
class PetFilter:
    """
    위치 외의 조건(비-지리 술어).
    저장소는 가능한 조건을 쿼리로 내려보내고, 나머지는 matches()로 걸러냅니다.
    """
    species: Optional[str] = None
    name_contains: Optional[str] = None
    owner_id: Optional[str] = None
    is_lost: Optional[bool] = None
    is_found: Optional[bool] = None
    lost_or_found: bool = False
    references_match: Optional[str] = None  # match_results에 이 pet_id 항목이 있는 레코드
    exclude_id: Optional[str] = None

    def equality_filters(self) -> Dict[str, Any]:
        """단순 동등 비교로 표현 가능한 조건들."""
        filters = {}
        if self.species is not None:
            filters['species'] = self.species
        if self.owner_id is not None:
            filters['owner_id'] = self.owner_id
        if self.is_lost is not None:
            filters['is_lost'] = self.is_lost
        if self.is_found is not None:
            filters['is_found'] = self.is_found
        return filters

    def matches(self, record: PetRecord) -> bool:
        for key, expected in self.equality_filters().items():
            if getattr(record, key) != expected:
                return False
        if self.lost_or_found and not (record.is_lost or record.is_found):
            return False
        if self.name_contains and self.name_contains.lower() not in (record.name or '').lower():
            return False
        if self.references_match is not None and self.references_match not in record.match_pet_ids:
            return False
        if self.exclude_id is not None and record.pet_id == self.exclude_id:
            return False
        return True


class PetStore(ABC):
    """매칭 엔진이 사용하는 저장소 기능."""

    @abstractmethod
    def get(self, pet_id: str) -> Optional[PetRecord]:
        ...

    @abstractmethod
    def insert(self, record: PetRecord) -> PetRecord:
        ...

    @abstractmethod
    def save(self, record: PetRecord) -> PetRecord:
        """레코드 전체를 덮어씁니다."""

    @abstractmethod
    def delete(self, pet_id: str) -> bool:
        ...

    @abstractmethod
    def find(self, pet_filter: PetFilter, offset: int = 0, limit: Optional[int] = None) -> List[PetRecord]:
        ...

    @abstractmethod
    def count_matching(self, pet_filter: PetFilter) -> int:
        ...

    @abstractmethod
    def near(self, field_path: str, center: LngLat, max_distance_m: float,
             pet_filter: PetFilter) -> List[PetRecord]:
        """
        GeoJSON Point 필드에 대한 거리 제한 쿼리.
        field_path 아래 'coordinates'가 center로부터 max_distance_m 이내인 레코드를 반환합니다.
        """

    @abstractmethod
    def within_center_sphere(self, field_path: str, center: LngLat, radius_radians: float,
                             pet_filter: PetFilter) -> List[PetRecord]:
        """
        [lng, lat] 배열 필드에 대한 구면 캡 쿼리.
        center와의 중심각이 radius_radians 이하인 레코드를 반환합니다.
        """

    @abstractmethod
    def bulk_pull(self, pet_filter: PetFilter, array_field: str, sub_filter: Dict[str, Any]) -> int:
        """
        pet_filter에 맞는 모든 레코드의 array_field에서 sub_filter와 일치하는 항목을
        하나의 원자적 연산으로 제거합니다. 수정된 레코드 수를 반환합니다.
        """


def resolve_path(data: Dict[str, Any], field_path: str) -> Any:
    """'lost_details.last_seen' 같은 점 표기 경로의 값을 꺼냅니다."""
    current: Any = data
    for part in field_path.split('.'):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def entry_matches(entry: Any, sub_filter: Dict[str, Any]) -> bool:
    if not isinstance(entry, dict):
        return False
    return all(entry.get(key) == value for key, value in sub_filter.items())
