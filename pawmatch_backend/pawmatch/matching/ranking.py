# pawmatch/matching/ranking.py
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from pawmatch.models.pet import PetRecord
from pawmatch.matching.geo import haversine_km
from pawmatch.matching.location import LocationResolver, ResolvedLocation


@dataclass
class RankedPet:
    record: PetRecord
    distance_km: Optional[float] = None  # 위치를 알 수 없으면 None (0과 구분)
    resolved: Optional[ResolvedLocation] = None  # 길안내 대상 좌표


def format_distance(distance_km: Optional[float]) -> Optional[str]:
    if distance_km is None:
        return None
    return f"{distance_km:.1f} km"


class DistanceRanker:
    """
    병합된 후보의 거리를 기준 좌표로 다시 계산해 가까운 순으로 정렬합니다.
    어떤 쿼리로 찾았는지와 무관하게 같은 기준으로 비교하기 위함입니다.
    """

    def __init__(self, resolver: Optional[LocationResolver] = None):
        self.resolver = resolver or LocationResolver()

    def distance_to(self, record: PetRecord, lat: float, lng: float) -> Optional[float]:
        return self._distance(self.resolver.resolve(record), lat, lng)

    @staticmethod
    def _distance(resolved: Optional[ResolvedLocation], lat: float, lng: float) -> Optional[float]:
        if resolved is None:
            return None
        distance = haversine_km(lat, lng, resolved.lat, resolved.lng)
        return distance if math.isfinite(distance) else None

    def unranked(self, records: Iterable[PetRecord]) -> List[RankedPet]:
        """위치 조건이 없는 목록용. 순서는 유지하고 기준 좌표만 채웁니다."""
        return [RankedPet(record=record, resolved=self.resolver.resolve(record)) for record in records]

    def rank(self, records: Iterable[PetRecord], lat: float, lng: float) -> List[RankedPet]:
        ranked = []
        for record in records:
            resolved = self.resolver.resolve(record)
            ranked.append(RankedPet(record=record, distance_km=self._distance(resolved, lat, lng), resolved=resolved))
        ranked.sort(key=lambda item: (
            math.inf if item.distance_km is None else item.distance_km,
            item.record.pet_id,
        ))
        return ranked

    @staticmethod
    def paginate(ranked: List[RankedPet], offset: int, limit: int) -> List[RankedPet]:
        """정렬이 끝난 목록에만 적용합니다."""
        return ranked[offset:offset + limit]
