# pawmatch/services/memory_pet_store.py
import copy
import logging
import threading
from typing import Any, Dict, List, Optional

from pawmatch.models.pet import PetRecord
from pawmatch.matching.geo import central_angle, haversine_km
from pawmatch.matching.location import valid_coordinates
from pawmatch.services.pet_store import (
    PetStore, PetFilter, LngLat, resolve_path, entry_matches
)

logger = logging.getLogger(__name__)


class InMemoryPetStore(PetStore):
    """
    프로세스 메모리에 레코드를 보관하는 저장소.
    테스트와 로컬 개발(PET_STORE_BACKEND=memory)에서 사용합니다.
    모든 읽기/쓰기는 하나의 락으로 직렬화되며, 저장/반환 시 깊은 복사를 합니다.
    """

    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def _snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._docs.values()]

    def _scan(self, pet_filter: PetFilter) -> List[PetRecord]:
        records = [PetRecord.from_dict(doc) for doc in self._snapshot()]
        return [record for record in records if pet_filter.matches(record)]

    def get(self, pet_id: str) -> Optional[PetRecord]:
        with self._lock:
            doc = self._docs.get(pet_id)
            if doc is None:
                return None
            return PetRecord.from_dict(copy.deepcopy(doc))

    def insert(self, record: PetRecord) -> PetRecord:
        with self._lock:
            if record.pet_id in self._docs:
                raise ValueError(f"Pet {record.pet_id} already exists")
            self._docs[record.pet_id] = copy.deepcopy(record.to_dict())
        return record

    def save(self, record: PetRecord) -> PetRecord:
        with self._lock:
            self._docs[record.pet_id] = copy.deepcopy(record.to_dict())
        return record

    def delete(self, pet_id: str) -> bool:
        with self._lock:
            return self._docs.pop(pet_id, None) is not None

    def find(self, pet_filter: PetFilter, offset: int = 0, limit: Optional[int] = None) -> List[PetRecord]:
        records = sorted(self._scan(pet_filter), key=lambda r: (r.created_at, r.pet_id))
        end = None if limit is None else offset + limit
        return records[offset:end]

    def count_matching(self, pet_filter: PetFilter) -> int:
        return len(self._scan(pet_filter))

    def near(self, field_path: str, center: LngLat, max_distance_m: float,
             pet_filter: PetFilter) -> List[PetRecord]:
        center_lng, center_lat = center
        results = []
        for doc in self._snapshot():
            value = resolve_path(doc, f"{field_path}.coordinates")
            # 2dsphere 인덱스처럼 GeoJSON Point 형태만 대상으로 합니다.
            if not isinstance(value, dict) or value.get('type') != 'Point':
                continue
            coords = valid_coordinates(value)
            if coords is None:
                continue
            distance_m = haversine_km(center_lat, center_lng, coords[1], coords[0]) * 1000
            if distance_m > max_distance_m:
                continue
            record = PetRecord.from_dict(doc)
            if pet_filter.matches(record):
                results.append(record)
        return results

    def within_center_sphere(self, field_path: str, center: LngLat, radius_radians: float,
                             pet_filter: PetFilter) -> List[PetRecord]:
        center_lng, center_lat = center
        results = []
        for doc in self._snapshot():
            coords = valid_coordinates(resolve_path(doc, f"{field_path}.coordinates"))
            if coords is None:
                continue
            if central_angle(center_lat, center_lng, coords[1], coords[0]) > radius_radians:
                continue
            record = PetRecord.from_dict(doc)
            if pet_filter.matches(record):
                results.append(record)
        return results

    def bulk_pull(self, pet_filter: PetFilter, array_field: str, sub_filter: Dict[str, Any]) -> int:
        updated = 0
        # 조회와 수정을 하나의 락 안에서 수행해 동시 확정 간의 갱신 유실을 막습니다.
        with self._lock:
            for pet_id, doc in self._docs.items():
                if not pet_filter.matches(PetRecord.from_dict(copy.deepcopy(doc))):
                    continue
                entries = doc.get(array_field) or []
                kept = [entry for entry in entries if not entry_matches(entry, sub_filter)]
                if len(kept) != len(entries):
                    doc[array_field] = kept
                    updated += 1
        logger.info(f"bulk_pull removed {sub_filter} from '{array_field}' of {updated} pets")
        return updated
