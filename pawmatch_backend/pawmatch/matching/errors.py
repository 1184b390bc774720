# pawmatch/matching/errors.py


class PetNotFoundError(LookupError):
    """요청한 pet_id의 레코드가 존재하지 않습니다."""

    def __init__(self, pet_id: str):
        super().__init__(f"반려동물을 찾을 수 없습니다: {pet_id}")
        self.pet_id = pet_id


class ProximitySearchError(RuntimeError):
    """근접 쿼리 중 하나가 실패했습니다. 부분 결과는 반환하지 않습니다."""

    def __init__(self, field_path: str, cause: Exception):
        super().__init__(f"위치 검색 실패 ({field_path}): {cause}")
        self.field_path = field_path
        self.cause = cause
