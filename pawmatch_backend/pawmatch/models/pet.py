# pawmatch/models/pet.py
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any
import logging

from pawmatch.utils.datetime_utils import DateTimeUtils


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    """데이터클래스에 정의된 키만 남깁니다. (geohash 등 저장소 전용 필드 제거)"""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class Weight:
    value: float = 0.0
    unit: str = "kg"


@dataclass
class PetLocation:
    """
    주소와 좌표로 이루어진 위치 정보.
    coordinates는 저장된 모양 그대로 보관합니다:
    [lng, lat] 배열 또는 {"type": "Point", "coordinates": [lng, lat]}.
    """
    address: str = ""
    coordinates: Any = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["PetLocation"]:
        if not data:
            return None
        return cls(**_known_fields(cls, data))


@dataclass
class LostDetails:
    """분실 신고 정보. last_seen 좌표는 [lng, lat] 배열로 저장됩니다."""
    date_lost: Optional[datetime] = None
    last_seen: Optional[PetLocation] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["LostDetails"]:
        if not data:
            return None
        processed = _known_fields(cls, data)
        processed['last_seen'] = PetLocation.from_dict(processed.get('last_seen'))
        return cls(**processed)


@dataclass
class FoundDetails:
    """발견 신고 정보. location 좌표는 GeoJSON Point로 저장됩니다."""
    date_found: Optional[datetime] = None
    location: Optional[PetLocation] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["FoundDetails"]:
        if not data:
            return None
        processed = _known_fields(cls, data)
        processed['location'] = PetLocation.from_dict(processed.get('location'))
        return cls(**processed)


@dataclass
class MatchResult:
    pet_id: str
    score: float
    matched_at: datetime = field(default_factory=DateTimeUtils.now)


@dataclass
class PetRecord:
    """
    'pets' 컬렉션 문서 구조.
    매칭 엔진의 기본 단위로, 분실/발견 상태와 최대 세 개의 위치 정보를 가집니다.
    """
    pet_id: str
    owner_id: str
    name: str
    species: str
    breed: Optional[str] = None
    age: Optional[float] = None
    birthday: Optional[datetime] = None
    fur_color: Optional[str] = None
    eye_color: Optional[str] = None
    weight: Weight = field(default_factory=Weight)
    images: List[str] = field(default_factory=list)
    description: Optional[str] = None

    # 연락처
    phone_numbers: List[str] = field(default_factory=list)
    email: Optional[str] = None

    # 상태 플래그
    is_lost: bool = False
    is_found: bool = False

    # 위치 정보 (우선순위: found_details.location > lost_details.last_seen > location)
    location: Optional[PetLocation] = None
    lost_details: Optional[LostDetails] = None
    found_details: Optional[FoundDetails] = None

    vaccinated: Optional[bool] = None
    microchipped: Optional[bool] = None
    match_results: List[MatchResult] = field(default_factory=list)

    registration_date: datetime = field(default_factory=DateTimeUtils.now)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PetRecord":
        """
        저장소에서 읽은 딕셔너리로부터 PetRecord를 생성합니다.
        중첩 객체를 데이터클래스로 변환하고, Firestore Timestamp를 datetime으로 바꿉니다.
        """
        processed = _known_fields(cls, DateTimeUtils.from_firestore(data))

        weight = processed.get('weight')
        if isinstance(weight, dict):
            processed['weight'] = Weight(**_known_fields(Weight, weight))
        elif weight is None:
            processed['weight'] = Weight()

        processed['location'] = PetLocation.from_dict(processed.get('location'))
        processed['lost_details'] = LostDetails.from_dict(processed.get('lost_details'))
        processed['found_details'] = FoundDetails.from_dict(processed.get('found_details'))

        results = []
        for entry in processed.get('match_results') or []:
            if not entry or not entry.get('pet_id'):
                logging.warning(f"Dropping malformed match result on pet {processed.get('pet_id')}: {entry}")
                continue
            results.append(MatchResult(**_known_fields(MatchResult, entry)))
        processed['match_results'] = results

        age = processed.get('age')
        if isinstance(age, str):
            try:
                processed['age'] = float(age)
            except ValueError:
                processed['age'] = None

        for list_field in ('images', 'phone_numbers'):
            if processed.get(list_field) is None:
                processed[list_field] = []

        return cls(**processed)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def match_pet_ids(self) -> List[str]:
        return [result.pet_id for result in self.match_results]
