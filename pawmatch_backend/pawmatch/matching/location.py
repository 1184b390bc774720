# pawmatch/matching/location.py
"""
레코드의 세 가지 위치 정보 중 '기준 좌표' 하나를 고르는 모듈.

우선순위는 발견 위치 > 마지막 목격 위치 > 기본 위치입니다.
발견 신고가 있는 레코드는 등록 당시 주소가 아니라 발견 지점을 기준으로 검색/길안내해야 합니다.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from pawmatch.models.pet import PetRecord, PetLocation

LngLat = Tuple[float, float]

# (0, 0)은 '미설정'을 뜻하는 센티널 값입니다.
SENTINEL_COORDINATES: LngLat = (0.0, 0.0)


class LocationSource(Enum):
    FOUND = "found"
    LOST = "lost"
    BASE = "base"


@dataclass(frozen=True)
class ResolvedLocation:
    kind: LocationSource
    address: str
    coordinates: LngLat  # (lng, lat)

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


def parse_coordinates(value: Any) -> Optional[LngLat]:
    """
    [lng, lat] 배열 또는 {"type": "Point", "coordinates": [lng, lat]} 형태를
    (lng, lat) 튜플로 정규화합니다. 숫자로 해석할 수 없으면 None을 반환합니다.
    범위/센티널 검증은 하지 않습니다. (is_valid_coordinates 참고)
    """
    if isinstance(value, dict):
        value = value.get('coordinates')
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    try:
        lng, lat = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        return None
    return lng, lat


def is_valid_coordinates(lng: float, lat: float) -> bool:
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return False
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return False
    return (lng, lat) != SENTINEL_COORDINATES


def valid_coordinates(value: Any) -> Optional[LngLat]:
    """파싱과 검증을 모두 통과한 좌표만 반환합니다."""
    parsed = parse_coordinates(value)
    if parsed is None or not is_valid_coordinates(*parsed):
        return None
    return parsed


def to_point(lng: Optional[float], lat: Optional[float]) -> dict:
    """GeoJSON Point로 변환합니다. 값이 없으면 센티널 좌표를 저장합니다."""
    if lng is None or lat is None or not (math.isfinite(lng) and math.isfinite(lat)):
        lng, lat = SENTINEL_COORDINATES
    return {"type": "Point", "coordinates": [float(lng), float(lat)]}


def to_pair(lng: Optional[float], lat: Optional[float]) -> list:
    """[lng, lat] 배열로 변환합니다. (lost_details.last_seen 저장 형식)"""
    if lng is None or lat is None or not (math.isfinite(lng) and math.isfinite(lat)):
        lng, lat = SENTINEL_COORDINATES
    return [float(lng), float(lat)]


class LocationResolver:
    """PetRecord에서 검색/거리 계산에 사용할 좌표 하나를 선택합니다."""

    def candidates(self, record: PetRecord):
        found = record.found_details.location if record.found_details else None
        lost = record.lost_details.last_seen if record.lost_details else None
        yield LocationSource.FOUND, found
        yield LocationSource.LOST, lost
        yield LocationSource.BASE, record.location

    def resolve(self, record: PetRecord) -> Optional[ResolvedLocation]:
        for kind, place in self.candidates(record):
            resolved = self._try_place(kind, place)
            if resolved:
                return resolved
        return None

    @staticmethod
    def _try_place(kind: LocationSource, place: Optional[PetLocation]) -> Optional[ResolvedLocation]:
        if place is None:
            return None
        coords = valid_coordinates(place.coordinates)
        if coords is None:
            return None
        return ResolvedLocation(kind=kind, address=place.address or "", coordinates=coords)
