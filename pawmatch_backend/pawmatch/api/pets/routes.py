# pawmatch/api/pets/routes.py
import logging
from typing import Optional
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from pawmatch.matching import PetNotFoundError, ProximitySearchError, SearchQuery, format_distance
from .schemas import (
    PetSearchQuerySchema,
    PetMatchRequestSchema,
    ConfirmMatchSchema,
    PaginationQuerySchema,
    PetRegistrationSchema,
    PetUpdateSchema,
    PetResponseSchema,
    SearchResultSchema,
    CandidateMatchResponseSchema,
    OwnerMatchResponseSchema,
)

pets_bp = Blueprint('pets_bp', __name__)


def _error(error_code: str, message, status: int, details=None):
    body = {"success": False, "error_code": error_code, "error": message}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def _validation_error(err: ValidationError):
    fields = ", ".join(sorted(str(k) for k in err.messages)) if isinstance(err.messages, dict) else ""
    message = f"입력값이 올바르지 않습니다: {fields}" if fields else "입력값이 올바르지 않습니다."
    return _error("VALIDATION_ERROR", message, 400, err.messages)


def _pagination(total: int, limit: int, offset: int, has_more: Optional[bool] = None) -> dict:
    if has_more is None:
        has_more = total > offset + limit
    return {"total": total, "limit": limit, "offset": offset, "hasMore": has_more}


@pets_bp.route('', methods=['GET'])
@jwt_required()
def search_pets():
    """분실/발견 반려동물 목록 및 위치 기반 검색 API."""
    orchestrator = current_app.services['matching']
    try:
        params = PetSearchQuerySchema().load(request.args.to_dict())
        query = SearchQuery(
            species=params['species'], name_contains=params['search'],
            lat=params['lat'], lng=params['lng'], radius_km=params['radius'],
            limit=params['limit'], offset=params['offset'],
        )
        page = orchestrator.search(query)

        pets = []
        for item in page.items:
            pet_dict = item.record.to_dict()
            distance = format_distance(item.distance_km)
            if distance is not None:
                pet_dict['distance'] = distance
            target = item.resolved
            pet_dict['navigation_target'] = None if target is None else {
                "kind": target.kind.value, "address": target.address, "coordinates": list(target.coordinates),
            }
            pets.append(pet_dict)

        return jsonify({
            "success": True,
            "pets": SearchResultSchema(many=True).dump(pets),
            "pagination": _pagination(page.total, page.limit, page.offset, page.has_more),
        }), 200
    except ValidationError as err:
        return _validation_error(err)
    except ProximitySearchError as e:
        logging.error(f"Pet search fan-out failed: {e}", exc_info=True)
        return _error("SEARCH_FAILED", "위치 기반 검색 중 오류가 발생했습니다.", 500)
    except Exception as e:
        logging.error(f"Pet search API error: {e}", exc_info=True)
        return _error("INTERNAL_SERVER_ERROR", "반려동물 검색 중 오류가 발생했습니다.", 500)


@pets_bp.route('/mine', methods=['GET'])
@jwt_required()
def list_my_pets():
    """내가 등록한 반려동물 목록 API."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        params = PaginationQuerySchema().load(request.args.to_dict())
        pets, total = pet_service.list_my_pets(user_id, params['limit'], params['offset'])
        return jsonify({
            "success": True,
            "pets": PetResponseSchema(many=True).dump([p.to_dict() for p in pets]),
            "pagination": _pagination(total, params['limit'], params['offset']),
        }), 200
    except ValidationError as err:
        return _validation_error(err)
    except Exception as e:
        logging.error(f"List my pets API error (user: {user_id}): {e}", exc_info=True)
        return _error("FETCH_FAILED", "반려동물 목록 조회 중 오류가 발생했습니다.", 500)


@pets_bp.route('', methods=['POST'])
@jwt_required()
def register_pet():
    """반려동물 등록 API."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        validated_data = PetRegistrationSchema().load(request.get_json(silent=True) or {})
        new_pet = pet_service.register_pet(user_id, validated_data)
        return jsonify({"success": True, "pet": PetResponseSchema().dump(new_pet.to_dict())}), 201
    except ValidationError as err:
        return _validation_error(err)
    except Exception as e:
        logging.error(f"Pet registration API error: {e}", exc_info=True)
        return _error("PET_REGISTRATION_FAILED", "반려동물 등록 중 오류가 발생했습니다.", 500)


@pets_bp.route('/match', methods=['POST'])
@jwt_required()
def find_match_candidates():
    """저장 전 발견 신고 초안과 비슷한 분실 반려동물을 찾습니다."""
    orchestrator = current_app.services['matching']
    try:
        draft = PetMatchRequestSchema().load(request.get_json(silent=True) or {})
        candidates = orchestrator.find_candidates(draft)
        matches = [
            {"score": c.score, "lost_pet_id": c.lost_record.pet_id, "lost_pet": c.lost_record.to_dict()}
            for c in candidates
        ]
        return jsonify({"success": True, "matches": CandidateMatchResponseSchema(many=True).dump(matches)}), 200
    except ValidationError as err:
        return _validation_error(err)
    except Exception as e:
        logging.error(f"Match candidates API error: {e}", exc_info=True)
        return _error("MATCH_FAILED", "매칭 후보 조회 중 오류가 발생했습니다.", 500)


@pets_bp.route('/matches', methods=['GET'])
@jwt_required()
def list_my_matches():
    """내 분실 반려동물과 현재 발견 신고된 반려동물의 매칭 목록."""
    user_id = get_jwt_identity()
    orchestrator = current_app.services['matching']
    try:
        matches = orchestrator.list_my_matches(user_id)
        payload = [
            {
                "lost_id": m.lost_id, "lost_name": m.lost_name,
                "found_id": m.found_id, "found_name": m.found_name,
                "score": m.score, "matched_at": m.matched_at,
                "found_pet": m.found_pet.to_dict(),
            }
            for m in matches
        ]
        return jsonify({"success": True, "matches": OwnerMatchResponseSchema(many=True).dump(payload)}), 200
    except Exception as e:
        logging.error(f"List matches API error (user: {user_id}): {e}", exc_info=True)
        return _error("FETCH_FAILED", "매칭 목록 조회 중 오류가 발생했습니다.", 500)


@pets_bp.route('/<string:pet_id>/confirm-match', methods=['POST'])
@jwt_required()
def confirm_match(pet_id: str):
    """[소유자 전용] 분실 반려동물의 매칭을 확정합니다."""
    user_id = get_jwt_identity()
    orchestrator = current_app.services['matching']
    try:
        data = ConfirmMatchSchema().load(request.get_json(silent=True) or {})
        result = orchestrator.confirm_match(pet_id, data['matched_pet_id'], user_id)
        message = "매칭이 확정되었습니다."
        if not result.others_cleared:
            message = "매칭이 확정되었지만 다른 반려동물의 매칭 기록 정리에 실패했습니다."
        return jsonify({
            "success": True,
            "message": message,
            "pet": PetResponseSchema().dump(result.pet.to_dict()),
            "othersCleared": result.others_cleared,
        }), 200
    except ValidationError as err:
        return _validation_error(err)
    except PetNotFoundError as e:
        return _error("PET_NOT_FOUND", str(e), 404)
    except PermissionError as e:
        return _error("FORBIDDEN", str(e), 403)
    except Exception as e:
        logging.error(f"Confirm match API error (pet_id: {pet_id}): {e}", exc_info=True)
        return _error("INTERNAL_SERVER_ERROR", "매칭 확정 중 오류가 발생했습니다.", 500)


@pets_bp.route('/<string:pet_id>', methods=['GET'])
@jwt_required()
def get_pet_profile(pet_id: str):
    """[소유자 전용] 특정 반려동물의 전체 정보를 조회합니다."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        pet = pet_service.get_pet_profile(pet_id, user_id)
        return jsonify({"success": True, "pet": PetResponseSchema().dump(pet.to_dict())}), 200
    except PetNotFoundError as e:
        return _error("PET_NOT_FOUND", str(e), 404)
    except PermissionError as e:
        return _error("FORBIDDEN", str(e), 403)
    except Exception as e:
        logging.error(f"Get pet profile API error (pet_id: {pet_id}): {e}", exc_info=True)
        return _error("FETCH_FAILED", "반려동물 조회 중 오류가 발생했습니다.", 500)


@pets_bp.route('/<string:pet_id>', methods=['PUT'])
@jwt_required()
def update_pet(pet_id: str):
    """[소유자 전용] 반려동물 정보를 수정합니다 (분실/발견 상태 전환 포함)."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        update_data = PetUpdateSchema().load(request.get_json(silent=True) or {})
        pet = pet_service.update_pet(pet_id, user_id, update_data)
        return jsonify({"success": True, "pet": PetResponseSchema().dump(pet.to_dict())}), 200
    except ValidationError as err:
        return _validation_error(err)
    except PetNotFoundError as e:
        return _error("PET_NOT_FOUND", str(e), 404)
    except PermissionError as e:
        return _error("FORBIDDEN", str(e), 403)
    except ValueError as e:
        return _error("VALIDATION_ERROR", str(e), 400)
    except Exception as e:
        logging.error(f"Update pet API error (pet_id: {pet_id}): {e}", exc_info=True)
        return _error("INTERNAL_SERVER_ERROR", "반려동물 정보 수정 중 오류가 발생했습니다.", 500)


@pets_bp.route('/<string:pet_id>', methods=['DELETE'])
@jwt_required()
def delete_pet(pet_id: str):
    """[소유자 전용] 반려동물을 삭제합니다."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        pet_service.delete_pet(pet_id, user_id)
        return jsonify({"success": True, "message": "반려동물이 삭제되었습니다."}), 200
    except PetNotFoundError as e:
        return _error("PET_NOT_FOUND", str(e), 404)
    except PermissionError as e:
        return _error("FORBIDDEN", str(e), 403)
    except Exception as e:
        logging.error(f"Delete pet API error (pet_id: {pet_id}): {e}", exc_info=True)
        return _error("INTERNAL_SERVER_ERROR", "반려동물 삭제 중 오류가 발생했습니다.", 500)
