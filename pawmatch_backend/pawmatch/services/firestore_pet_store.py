# pawmatch/services/firestore_pet_store.py
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Set

import pygeohash as pgh
from firebase_admin import firestore
from firebase_admin.firestore import Transaction
from google.cloud.firestore_v1.base_query import FieldFilter

from pawmatch.models.pet import PetRecord
from pawmatch.matching.geo import central_angle, haversine_km
from pawmatch.matching.location import valid_coordinates
from pawmatch.services.pet_store import (
    PetStore, PetFilter, LngLat, MATCH_RESULTS_FIELD, resolve_path, entry_matches
)
from pawmatch.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

# GeoJSON Point로 저장되는 필드. 이 필드들에는 geohash를 함께 저장합니다.
POINT_FIELDS = ('location', 'found_details.location')

# geohash 정밀도별 셀의 짧은 변 길이(km, 적도 기준)
_GEOHASH_CELL_KM = {1: 4992.6, 2: 624.1, 3: 156.0, 4: 19.5, 5: 4.89, 6: 0.61, 7: 0.152, 8: 0.019}
_KM_PER_DEGREE = 111.32


def geohash_precision_for(radius_km: float) -> int:
    """반경보다 큰 셀 중 가장 정밀한 geohash 길이를 고릅니다."""
    precision = 1
    for length, cell_km in sorted(_GEOHASH_CELL_KM.items()):
        if cell_km >= radius_km:
            precision = length
    return precision


def covering_geohashes(lat: float, lng: float, radius_km: float) -> Set[str]:
    """중심점 주변 반경을 덮는 geohash 셀 집합을 계산합니다."""
    precision = geohash_precision_for(radius_km)
    _, _, lat_err, lng_err = pgh.decode_exactly(pgh.encode(lat, lng, precision=precision))

    # 반경이 지구 반 바퀴(π·R)를 넘으면 위도 전체를 덮으므로 더 샘플링할 필요가 없습니다.
    lat_span = min(180.0, radius_km / _KM_PER_DEGREE)
    cos_lat = math.cos(math.radians(lat))
    lng_span = 180.0 if cos_lat < 1e-6 else min(180.0, radius_km / (_KM_PER_DEGREE * cos_lat))

    def _samples(center: float, span: float, step: float) -> List[float]:
        count = max(1, int(math.ceil(2 * span / step)))
        return [center - span + i * (2 * span / count) for i in range(count + 1)]

    cells = set()
    for sample_lat in _samples(lat, lat_span, lat_err):
        sample_lat = max(-90.0, min(90.0, sample_lat))
        for sample_lng in _samples(lng, lng_span, lng_err):
            wrapped_lng = ((sample_lng + 180.0) % 360.0) - 180.0
            cells.add(pgh.encode(sample_lat, wrapped_lng, precision=precision))
    return cells


class FirestorePetStore(PetStore):
    """
    Firestore 'pets' 컬렉션 기반 저장소.
    - GeoJSON Point 필드는 geohash를 함께 저장해 범위 쿼리로 근접 검색합니다.
    - [lng, lat] 배열 필드는 인덱스가 없어 후보를 읽은 뒤 중심각으로 걸러냅니다.
    - match_pet_ids 배열을 함께 저장해 매칭 참조를 array_contains로 조회합니다.
    """

    def __init__(self, collection_name: str = 'pets'):
        self.db = firestore.client()
        self.pets_ref = self.db.collection(collection_name)
        logging.info(f"FirestorePetStore initialized on collection '{collection_name}'.")

    # --- 변환 ---
    def _to_document(self, record: PetRecord) -> Dict[str, Any]:
        data = record.to_dict()
        data['match_pet_ids'] = record.match_pet_ids
        for path in POINT_FIELDS:
            place = resolve_path(data, path)
            if not isinstance(place, dict):
                continue
            coords = valid_coordinates(place.get('coordinates'))
            place['geohash'] = pgh.encode(coords[1], coords[0], precision=9) if coords else None
        return DateTimeUtils.for_firestore(data)

    @staticmethod
    def _from_snapshot(doc) -> PetRecord:
        data = doc.to_dict()
        data.setdefault('pet_id', doc.id)
        return PetRecord.from_dict(data)

    def _base_query(self, pet_filter: PetFilter):
        query = self.pets_ref
        for key, value in pet_filter.equality_filters().items():
            query = query.where(filter=FieldFilter(key, "==", value))
        if pet_filter.references_match is not None:
            query = query.where(filter=FieldFilter("match_pet_ids", "array_contains", pet_filter.references_match))
        return query

    def _filtered(self, docs: Iterable, pet_filter: PetFilter) -> List[PetRecord]:
        records = (self._from_snapshot(doc) for doc in docs)
        return [record for record in records if pet_filter.matches(record)]

    # --- CRUD ---
    def get(self, pet_id: str) -> Optional[PetRecord]:
        doc = self.pets_ref.document(pet_id).get()
        if not doc.exists:
            return None
        return self._from_snapshot(doc)

    def insert(self, record: PetRecord) -> PetRecord:
        self.pets_ref.document(record.pet_id).create(self._to_document(record))
        return record

    def save(self, record: PetRecord) -> PetRecord:
        self.pets_ref.document(record.pet_id).set(self._to_document(record))
        return record

    def delete(self, pet_id: str) -> bool:
        doc_ref = self.pets_ref.document(pet_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    def find(self, pet_filter: PetFilter, offset: int = 0, limit: Optional[int] = None) -> List[PetRecord]:
        query = self._base_query(pet_filter)
        # 이름 부분 일치와 OR 조건은 Firestore에서 표현할 수 없어 읽은 뒤 거릅니다.
        records = sorted(self._filtered(query.stream(), pet_filter), key=lambda r: (r.created_at, r.pet_id))
        end = None if limit is None else offset + limit
        return records[offset:end]

    def count_matching(self, pet_filter: PetFilter) -> int:
        if pet_filter.name_contains or pet_filter.lost_or_found or pet_filter.exclude_id:
            return len(self._filtered(self._base_query(pet_filter).stream(), pet_filter))
        result = self._base_query(pet_filter).count().get()
        return int(result[0][0].value)

    # --- 근접 쿼리 ---
    def near(self, field_path: str, center: LngLat, max_distance_m: float,
             pet_filter: PetFilter) -> List[PetRecord]:
        center_lng, center_lat = center
        radius_km = max_distance_m / 1000
        geohash_field = f"{field_path}.geohash"
        base_query = self._base_query(pet_filter)

        by_id: Dict[str, PetRecord] = {}
        for cell in covering_geohashes(center_lat, center_lng, radius_km):
            query = (base_query
                     .where(filter=FieldFilter(geohash_field, ">=", cell))
                     .where(filter=FieldFilter(geohash_field, "<", cell + "~")))
            for record in self._filtered(query.stream(), pet_filter):
                by_id[record.pet_id] = record

        results = []
        for record in by_id.values():
            coords = valid_coordinates(resolve_path(record.to_dict(), f"{field_path}.coordinates"))
            if coords is None:
                continue
            if haversine_km(center_lat, center_lng, coords[1], coords[0]) * 1000 <= max_distance_m:
                results.append(record)
        return results

    def within_center_sphere(self, field_path: str, center: LngLat, radius_radians: float,
                             pet_filter: PetFilter) -> List[PetRecord]:
        center_lng, center_lat = center
        results = []
        for record in self._filtered(self._base_query(pet_filter).stream(), pet_filter):
            coords = valid_coordinates(resolve_path(record.to_dict(), f"{field_path}.coordinates"))
            if coords is None:
                continue
            if central_angle(center_lat, center_lng, coords[1], coords[0]) <= radius_radians:
                results.append(record)
        return results

    # --- 일괄 갱신 ---
    def bulk_pull(self, pet_filter: PetFilter, array_field: str, sub_filter: Dict[str, Any]) -> int:
        """조회와 제거를 하나의 트랜잭션으로 처리합니다. 경합 시 Firestore가 재시도합니다."""
        transaction = self.db.transaction()
        query = self._base_query(pet_filter)

        @firestore.transactional
        def _pull_in_transaction(transaction: Transaction) -> int:
            updated = 0
            for doc in transaction.get(query):
                if not pet_filter.matches(self._from_snapshot(doc)):
                    continue
                entries = doc.to_dict().get(array_field) or []
                kept = [entry for entry in entries if not entry_matches(entry, sub_filter)]
                if len(kept) == len(entries):
                    continue
                changes = {array_field: kept, 'updated_at': DateTimeUtils.now()}
                if array_field == MATCH_RESULTS_FIELD:
                    changes['match_pet_ids'] = [entry.get('pet_id') for entry in kept]
                transaction.update(doc.reference, changes)
                updated += 1
            return updated

        updated = _pull_in_transaction(transaction)
        logger.info(f"bulk_pull removed {sub_filter} from '{array_field}' of {updated} pets")
        return updated
