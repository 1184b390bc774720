# pawmatch/api/pets/schemas.py
import math
from datetime import timezone

from flask import current_app
from marshmallow import (
    Schema, fields, validate, validates, validates_schema, post_load, pre_load, ValidationError, EXCLUDE
)

from pawmatch.matching.location import parse_coordinates, valid_coordinates


def _blank_to_none(data, keys):
    """빈 문자열로 들어온 쿼리/본문 값을 없는 값으로 취급합니다."""
    if not isinstance(data, dict):
        return data
    cleaned = dict(data)
    for key in keys:
        value = cleaned.get(key)
        if isinstance(value, str) and not value.strip():
            cleaned.pop(key)
    return cleaned


class CoordinatesField(fields.Field):
    """[lng, lat] 배열 또는 {"type": "Point", "coordinates": [lng, lat]}를 받아 [lng, lat]로 정규화합니다."""

    def _deserialize(self, value, attr, data, **kwargs):
        parsed = parse_coordinates(value)
        if parsed is None:
            raise ValidationError("좌표는 [lng, lat] 형식이어야 합니다.")
        lng, lat = parsed
        if not (math.isfinite(lng) and math.isfinite(lat)):
            raise ValidationError("좌표는 유한한 숫자여야 합니다.")
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            raise ValidationError("좌표가 유효 범위를 벗어났습니다.")
        return [lng, lat]

    def _serialize(self, value, attr, obj, **kwargs):
        return value


# =====================================================================================
# 요청 스키마
# =====================================================================================

class PetSearchQuerySchema(Schema):
    """GET /api/pets 쿼리 파라미터 스키마."""
    class Meta:
        unknown = EXCLUDE

    species = fields.Str(load_default=None)
    search = fields.Str(load_default=None)
    location = fields.Str(load_default=None)
    radius = fields.Float(load_default=None, validate=validate.Range(min=0, min_inclusive=False))
    limit = fields.Int(load_default=None)
    offset = fields.Int(load_default=0, validate=validate.Range(min=0))

    @pre_load
    def strip_blanks(self, data, **kwargs):
        return _blank_to_none(data, ('species', 'search', 'location', 'radius', 'limit', 'offset'))

    @validates('limit')
    def validate_limit(self, value, **kwargs):
        if value is None:
            return
        max_limit = current_app.config.get('SEARCH_MAX_LIMIT', 100)
        if value < 1 or value > max_limit:
            raise ValidationError(f"limit은 1 이상 {max_limit} 이하여야 합니다.")

    @validates_schema
    def validate_geo_pair(self, data, **kwargs):
        has_location = data.get('location') is not None
        has_radius = data.get('radius') is not None
        if has_location != has_radius:
            missing = 'radius' if has_location else 'location'
            raise ValidationError("location과 radius는 함께 지정해야 합니다.", field_name=missing)

    @post_load
    def parse_location(self, data, **kwargs):
        if data.get('limit') is None:
            data['limit'] = current_app.config.get('SEARCH_DEFAULT_LIMIT', 20)
        location = data.pop('location', None)
        data['lat'] = data['lng'] = None
        if location is not None:
            parts = [p.strip() for p in location.split(',')]
            try:
                if len(parts) != 2:
                    raise ValueError(location)
                lat, lng = float(parts[0]), float(parts[1])
            except ValueError:
                raise ValidationError("location은 'lat,lng' 형식이어야 합니다.", field_name='location')
            if not (math.isfinite(lat) and math.isfinite(lng)) or abs(lat) > 90 or abs(lng) > 180:
                raise ValidationError("location 좌표가 유효 범위를 벗어났습니다.", field_name='location')
            data['lat'], data['lng'] = lat, lng
        return data


class MatchLocationSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    address = fields.Str(load_default="")
    coordinates = CoordinatesField(required=True, error_messages={"required": "location.coordinates는 필수입니다."})

    @validates('coordinates')
    def validate_not_sentinel(self, value, **kwargs):
        if valid_coordinates(value) is None:
            raise ValidationError("좌표 (0, 0)은 설정되지 않은 위치로 간주됩니다.")


class PetMatchRequestSchema(Schema):
    """POST /api/pets/match 발견 신고 초안 스키마."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(load_default=None)
    species = fields.Str(required=True, validate=validate.Length(min=1),
                         error_messages={"required": "species는 필수입니다."})
    breed = fields.Str(load_default=None, allow_none=True)
    fur_color = fields.Str(data_key='furColor', load_default=None, allow_none=True)
    eye_color = fields.Str(data_key='eyeColor', load_default=None, allow_none=True)
    age = fields.Float(load_default=None, allow_none=True)
    location = fields.Nested(MatchLocationSchema, required=True,
                             error_messages={"required": "location은 필수입니다."})

    @pre_load
    def strip_blanks(self, data, **kwargs):
        return _blank_to_none(data, ('species', 'breed', 'furColor', 'eyeColor', 'age'))


class ConfirmMatchSchema(Schema):
    """POST /api/pets/<pet_id>/confirm-match 요청 스키마."""
    matched_pet_id = fields.Str(data_key='matchedPetId', required=True, validate=validate.Length(min=1),
                                error_messages={"required": "matchedPetId는 필수입니다."})


class PaginationQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=20, validate=validate.Range(min=1, max=100))
    offset = fields.Int(load_default=0, validate=validate.Range(min=0))


class WeightSchema(Schema):
    value = fields.Float(validate=validate.Range(min=0))
    unit = fields.Str(load_default="kg")


class PlaceInputSchema(Schema):
    """상세 위치 입력. coordinates 또는 lat/lng 중 하나로 받습니다."""
    class Meta:
        unknown = EXCLUDE

    address = fields.Str(allow_none=True)
    coordinates = CoordinatesField(allow_none=True)
    lat = fields.Float(allow_none=True, validate=validate.Range(min=-90, max=90))
    lng = fields.Float(allow_none=True, validate=validate.Range(min=-180, max=180))


class LostDetailsInputSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    date_lost = fields.AwareDateTime(data_key='dateLost', default_timezone=timezone.utc, allow_none=True)
    last_seen = fields.Nested(PlaceInputSchema, data_key='lastSeen', allow_none=True)
    notes = fields.Str(allow_none=True)


class FoundDetailsInputSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    date_found = fields.AwareDateTime(data_key='dateFound', default_timezone=timezone.utc, allow_none=True)
    location = fields.Nested(PlaceInputSchema, allow_none=True)
    notes = fields.Str(allow_none=True)


class MatchResultInputSchema(Schema):
    pet_id = fields.Str(data_key='petId', required=True)
    score = fields.Float(required=True)
    matched_at = fields.AwareDateTime(data_key='matchedAt', default_timezone=timezone.utc, allow_none=True)


class PetRegistrationSchema(Schema):
    """POST /api/pets 반려동물 등록 요청 스키마."""
    class Meta:
        unknown = EXCLUDE

    name = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    species = fields.Str(required=True, validate=validate.Length(min=1, max=30))
    breed = fields.Str(allow_none=True)
    age = fields.Float(allow_none=True, validate=validate.Range(min=0))
    birthday = fields.AwareDateTime(default_timezone=timezone.utc, allow_none=True)
    fur_color = fields.Str(data_key='furColor', allow_none=True)
    eye_color = fields.Str(data_key='eyeColor', allow_none=True)
    weight = fields.Nested(WeightSchema, allow_none=True)
    images = fields.List(fields.Str(), load_default=list)
    description = fields.Str(allow_none=True)
    phone_numbers = fields.List(fields.Str(), data_key='phoneNumbers', load_default=list)
    email = fields.Email(allow_none=True)
    is_lost = fields.Bool(data_key='isLost', load_default=False)
    is_found = fields.Bool(data_key='isFound', load_default=False)
    address = fields.Str(allow_none=True)
    lat = fields.Float(allow_none=True, validate=validate.Range(min=-90, max=90))
    lng = fields.Float(allow_none=True, validate=validate.Range(min=-180, max=180))
    vaccinated = fields.Bool(allow_none=True)
    microchipped = fields.Bool(allow_none=True)
    lost_details = fields.Nested(LostDetailsInputSchema, data_key='lostDetails', allow_none=True)
    found_details = fields.Nested(FoundDetailsInputSchema, data_key='foundDetails', allow_none=True)

    @pre_load
    def strip_blanks(self, data, **kwargs):
        return _blank_to_none(data, ('breed', 'furColor', 'eyeColor', 'description', 'email', 'address'))


class PetUpdateSchema(PetRegistrationSchema):
    """PUT /api/pets/<pet_id> 부분 업데이트 스키마."""
    name = fields.Str(validate=validate.Length(min=1, max=50))
    species = fields.Str(validate=validate.Length(min=1, max=30))
    images = fields.List(fields.Str())
    phone_numbers = fields.List(fields.Str(), data_key='phoneNumbers')
    is_lost = fields.Bool(data_key='isLost')
    is_found = fields.Bool(data_key='isFound')
    match_results = fields.List(fields.Nested(MatchResultInputSchema), data_key='matchResults')


# =====================================================================================
# 응답 스키마
# =====================================================================================

class PlaceResponseSchema(Schema):
    address = fields.Str(allow_none=True)
    coordinates = fields.Raw(allow_none=True)


class LostDetailsResponseSchema(Schema):
    date_lost = fields.DateTime(data_key='dateLost', allow_none=True)
    last_seen = fields.Nested(PlaceResponseSchema, data_key='lastSeen', allow_none=True)
    notes = fields.Str(allow_none=True)


class FoundDetailsResponseSchema(Schema):
    date_found = fields.DateTime(data_key='dateFound', allow_none=True)
    location = fields.Nested(PlaceResponseSchema, allow_none=True)
    notes = fields.Str(allow_none=True)


class MatchResultResponseSchema(Schema):
    pet_id = fields.Str(data_key='petId')
    score = fields.Float()
    matched_at = fields.DateTime(data_key='matchedAt', allow_none=True)


class PetResponseSchema(Schema):
    """반려동물 레코드 응답 스키마 (camelCase)."""
    pet_id = fields.Str(data_key='id')
    owner_id = fields.Str(data_key='ownerId')
    name = fields.Str()
    species = fields.Str()
    breed = fields.Str(allow_none=True)
    age = fields.Float(allow_none=True)
    birthday = fields.DateTime(allow_none=True)
    fur_color = fields.Str(data_key='furColor', allow_none=True)
    eye_color = fields.Str(data_key='eyeColor', allow_none=True)
    weight = fields.Nested(WeightSchema)
    images = fields.List(fields.Str())
    description = fields.Str(allow_none=True)
    phone_numbers = fields.List(fields.Str(), data_key='phoneNumbers')
    email = fields.Str(allow_none=True)
    is_lost = fields.Bool(data_key='isLost')
    is_found = fields.Bool(data_key='isFound')
    location = fields.Nested(PlaceResponseSchema, allow_none=True)
    lost_details = fields.Nested(LostDetailsResponseSchema, data_key='lostDetails', allow_none=True)
    found_details = fields.Nested(FoundDetailsResponseSchema, data_key='foundDetails', allow_none=True)
    vaccinated = fields.Bool(allow_none=True)
    microchipped = fields.Bool(allow_none=True)
    match_results = fields.List(fields.Nested(MatchResultResponseSchema), data_key='matchResults')
    registration_date = fields.DateTime(data_key='registrationDate')
    created_at = fields.DateTime(data_key='createdAt')
    updated_at = fields.DateTime(data_key='updatedAt')


class NavigationTargetSchema(Schema):
    kind = fields.Str()
    address = fields.Str()
    coordinates = fields.List(fields.Float())  # [lng, lat]


class SearchResultSchema(PetResponseSchema):
    """
    검색 결과 항목.
    위치 기반 검색일 때 distance("1.2 km")가 포함되고,
    navigationTarget은 우선순위(발견 > 목격 > 기본)로 고른 좌표이며 없으면 null입니다.
    """
    distance = fields.Str()
    navigation_target = fields.Nested(NavigationTargetSchema, data_key='navigationTarget', allow_none=True)


class CandidateMatchResponseSchema(Schema):
    score = fields.Float()
    lost_pet_id = fields.Str(data_key='lostPetId')
    lost_pet = fields.Nested(PetResponseSchema, data_key='lostPet')


class OwnerMatchResponseSchema(Schema):
    lost_id = fields.Str(data_key='lostId')
    lost_name = fields.Str(data_key='lostName')
    found_id = fields.Str(data_key='foundId')
    found_name = fields.Str(data_key='foundName')
    score = fields.Float()
    matched_at = fields.DateTime(data_key='matchedAt')
    found_pet = fields.Nested(PetResponseSchema, data_key='foundPet')
