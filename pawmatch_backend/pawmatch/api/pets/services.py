# pawmatch/api/pets/services.py
import logging
import uuid
from typing import Dict, Any, Optional, List, Tuple

from pawmatch.models.pet import (
    PetRecord, PetLocation, LostDetails, FoundDetails, MatchResult, Weight
)
from pawmatch.matching.errors import PetNotFoundError
from pawmatch.matching.location import parse_coordinates, to_point, to_pair
from pawmatch.services.pet_store import PetStore, PetFilter
from pawmatch.utils.datetime_utils import DateTimeUtils

# 요청 키 → 레코드 속성으로 그대로 옮기는 단순 필드
_SCALAR_FIELDS = (
    'name', 'species', 'breed', 'age', 'birthday', 'fur_color', 'eye_color',
    'images', 'description', 'phone_numbers', 'email', 'is_lost', 'is_found',
    'vaccinated', 'microchipped',
)


def _lng_lat(place: Optional[Dict[str, Any]]) -> Tuple[Optional[float], Optional[float]]:
    """coordinates([lng, lat]) 또는 lat/lng 키에서 좌표를 꺼냅니다."""
    if not place:
        return None, None
    parsed = parse_coordinates(place.get('coordinates'))
    if parsed is not None:
        return parsed
    return place.get('lng'), place.get('lat')


class PetService:
    """반려동물 레코드의 등록/조회/수정/삭제를 담당하는 서비스. 위치는 저장 형식에 맞춰 정규화합니다."""

    def __init__(self, store: PetStore):
        self.store = store
        logging.info("PetService initialized with dependencies.")

    def _get_owned_pet(self, pet_id: str, user_id: str) -> PetRecord:
        pet = self.store.get(pet_id)
        if pet is None:
            raise PetNotFoundError(pet_id)
        if pet.owner_id != user_id:
            raise PermissionError("반려동물 정보에 접근할 권한이 없습니다.")
        return pet

    def get_pet_profile(self, pet_id: str, user_id: str) -> PetRecord:
        """[소유자 전용] 반려동물 레코드를 조회합니다."""
        return self._get_owned_pet(pet_id, user_id)

    def list_my_pets(self, user_id: str, limit: int, offset: int) -> Tuple[List[PetRecord], int]:
        pet_filter = PetFilter(owner_id=user_id)
        total = self.store.count_matching(pet_filter)
        return self.store.find(pet_filter, offset=offset, limit=limit), total

    def register_pet(self, user_id: str, pet_data: Dict[str, Any]) -> PetRecord:
        """반려동물을 등록합니다. 좌표가 없으면 센티널 (0, 0)으로 저장합니다."""
        weight = pet_data.get('weight') or {}
        new_pet = PetRecord(
            pet_id=str(uuid.uuid4()), owner_id=user_id,
            name=pet_data['name'].strip(), species=pet_data['species'].strip(),
            weight=Weight(value=weight.get('value') or 0.0, unit=weight.get('unit') or 'kg'),
        )
        self._apply_changes(new_pet, pet_data)
        if new_pet.location is None:
            new_pet.location = PetLocation(address=pet_data.get('address') or "", coordinates=to_point(None, None))

        self.store.insert(new_pet)
        logging.info(f"Pet {new_pet.pet_id} registered for user {user_id} (lost={new_pet.is_lost}, found={new_pet.is_found})")
        return new_pet

    def update_pet(self, pet_id: str, user_id: str, update_data: Dict[str, Any]) -> PetRecord:
        """[소유자 전용] 반려동물 레코드를 부분 업데이트합니다."""
        if not update_data:
            raise ValueError("수정할 데이터가 제공되지 않았습니다.")
        pet = self._get_owned_pet(pet_id, user_id)
        self._apply_changes(pet, update_data)
        pet.updated_at = DateTimeUtils.now()
        self.store.save(pet)
        logging.info(f"Pet {pet_id} updated with fields: {list(update_data.keys())}")
        return pet

    def delete_pet(self, pet_id: str, user_id: str) -> None:
        self._get_owned_pet(pet_id, user_id)
        self.store.delete(pet_id)
        logging.info(f"Pet {pet_id} deleted by user {user_id}")

    def _apply_changes(self, pet: PetRecord, data: Dict[str, Any]) -> None:
        for key in _SCALAR_FIELDS:
            if key in data:
                setattr(pet, key, data[key])

        if data.get('weight'):
            pet.weight = Weight(value=data['weight'].get('value') or 0.0, unit=data['weight'].get('unit') or 'kg')

        if 'match_results' in data:
            pet.match_results = [
                MatchResult(pet_id=entry['pet_id'], score=entry['score'],
                            matched_at=entry.get('matched_at') or DateTimeUtils.now())
                for entry in data['match_results'] or []
            ]

        # 기본 위치: lat/lng가 모두 있을 때만 GeoJSON Point로 갱신
        if data.get('lat') is not None and data.get('lng') is not None:
            address = data.get('address') or (pet.location.address if pet.location else "")
            pet.location = PetLocation(address=address, coordinates=to_point(data['lng'], data['lat']))
        elif data.get('address') is not None and pet.location is not None:
            pet.location.address = data['address']

        if 'lost_details' in data:
            pet.lost_details = self._merge_lost_details(pet.lost_details, data['lost_details'])
        if 'found_details' in data:
            pet.found_details = self._merge_found_details(pet.found_details, data['found_details'])

    @staticmethod
    def _merge_lost_details(current: Optional[LostDetails], incoming: Optional[Dict[str, Any]]) -> Optional[LostDetails]:
        if incoming is None:
            return None
        details = current or LostDetails()
        if 'date_lost' in incoming:
            details.date_lost = incoming['date_lost']
        if 'notes' in incoming:
            details.notes = incoming['notes']
        if 'last_seen' in incoming:
            place = incoming['last_seen']
            if place is None:
                details.last_seen = None
            else:
                lng, lat = _lng_lat(place)
                previous = details.last_seen
                # 마지막 목격 위치는 [lng, lat] 배열로 저장합니다.
                details.last_seen = PetLocation(
                    address=place.get('address') or (previous.address if previous else ""),
                    coordinates=to_pair(lng, lat) if lng is not None and lat is not None
                    else (previous.coordinates if previous else to_pair(None, None)),
                )
        return details

    @staticmethod
    def _merge_found_details(current: Optional[FoundDetails], incoming: Optional[Dict[str, Any]]) -> Optional[FoundDetails]:
        if incoming is None:
            return None
        details = current or FoundDetails()
        if 'date_found' in incoming:
            details.date_found = incoming['date_found']
        if 'notes' in incoming:
            details.notes = incoming['notes']
        place = incoming.get('location') or {}
        lng, lat = _lng_lat(place)
        previous = details.location
        # 발견 위치는 항상 GeoJSON Point로 저장하고, 좌표가 없으면 기존 값 또는 센티널을 유지합니다.
        if lng is not None and lat is not None:
            coordinates = to_point(lng, lat)
        elif previous is not None and isinstance(previous.coordinates, dict):
            coordinates = previous.coordinates
        else:
            coordinates = to_point(None, None)
        details.location = PetLocation(
            address=place.get('address') if place.get('address') is not None else (previous.address if previous else ""),
            coordinates=coordinates,
        )
        return details
