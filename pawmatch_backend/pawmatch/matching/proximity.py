# pawmatch/matching/proximity.py
"""
세 위치 필드에 대한 근접 검색(fan-out)과 병합.

저장소의 근접 연산은 필드 하나에만 적용되고 OR로 묶을 수 없기 때문에
필드마다 독립적인 쿼리를 동시에 실행한 뒤 pet_id 기준으로 중복을 제거합니다.
저장 형식이 다른 필드(GeoJSON Point / [lng, lat] 배열)에 어떤 쿼리를 쓸지는
이 모듈만 알고 있어야 합니다.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

from pawmatch.models.pet import PetRecord
from pawmatch.matching.errors import ProximitySearchError
from pawmatch.matching.geo import km_to_radians
from pawmatch.services.pet_store import PetStore, PetFilter

logger = logging.getLogger(__name__)


class GeoShape(Enum):
    POINT = "point"              # {"type": "Point", "coordinates": [lng, lat]}
    LEGACY_PAIR = "legacy_pair"  # [lng, lat]


@dataclass(frozen=True)
class GeoField:
    path: str
    shape: GeoShape

    def query(self, store: PetStore, lat: float, lng: float, radius_km: float,
              pet_filter: PetFilter) -> List[PetRecord]:
        center = (lng, lat)
        if self.shape is GeoShape.POINT:
            return store.near(self.path, center, radius_km * 1000, pet_filter)
        return store.within_center_sphere(self.path, center, km_to_radians(radius_km), pet_filter)


BASE_LOCATION = GeoField('location', GeoShape.POINT)
FOUND_LOCATION = GeoField('found_details.location', GeoShape.POINT)
LOST_LAST_SEEN = GeoField('lost_details.last_seen', GeoShape.LEGACY_PAIR)

DEFAULT_GEO_FIELDS = (BASE_LOCATION, FOUND_LOCATION, LOST_LAST_SEEN)


class ProximitySearch:
    def __init__(self, store: PetStore, geo_fields: Sequence[GeoField] = DEFAULT_GEO_FIELDS,
                 max_workers: int = 3):
        self.store = store
        self.geo_fields = tuple(geo_fields)
        self.max_workers = max(1, max_workers)

    def search(self, lat: float, lng: float, radius_km: float, pet_filter: PetFilter) -> List[PetRecord]:
        """
        반경 내에 있는 레코드를 순서 없이, 중복 없이 반환합니다.
        하나의 쿼리라도 실패하면 ProximitySearchError를 발생시킵니다.
        """
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.geo_fields))) as executor:
            futures = [
                (geo_field, executor.submit(geo_field.query, self.store, lat, lng, radius_km, pet_filter))
                for geo_field in self.geo_fields
            ]

            # 완료 순서와 무관하게 필드 순서대로 병합해 결과를 결정적으로 만듭니다.
            by_id: Dict[str, PetRecord] = {}
            for geo_field, future in futures:
                try:
                    records = future.result()
                except Exception as e:
                    logger.error(f"Proximity query on '{geo_field.path}' failed: {e}", exc_info=True)
                    for _, pending in futures:
                        pending.cancel()
                    raise ProximitySearchError(geo_field.path, e) from e
                logger.debug(f"Proximity query on '{geo_field.path}' returned {len(records)} pets")
                for record in records:
                    by_id[record.pet_id] = record

        logger.info(f"Proximity search ({lat}, {lng}, {radius_km}km) merged {len(by_id)} pets")
        return list(by_id.values())
