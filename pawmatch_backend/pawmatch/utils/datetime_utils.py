# pawmatch/utils/datetime_utils.py
"""
반려동물 레코드의 시간 필드를 일관되게 다루기 위한 유틸리티 모듈

- 모든 시각은 UTC timezone-aware datetime으로 통일합니다.
- Firestore 저장/읽기 시 중첩된 dict/list 안의 날짜까지 재귀적으로 변환합니다.
- 레거시 데이터나 메모리 저장소에 남아있는 ISO 문자열은 dateutil로 파싱합니다.
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any, Optional
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

# PetRecord에서 datetime으로 다뤄야 하는 필드 이름들
DATETIME_FIELDS = ('birthday', 'registration_date', 'created_at', 'updated_at',
                   'date_lost', 'date_found', 'matched_at')


class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 UTC datetime으로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00.123456Z
        - 2024-01-15T10:30:00 (UTC로 간주)
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Firestore 저장을 위해 날짜/시간 값을 변환

        변환 규칙:
        - date -> datetime (00:00:00 UTC)
        - timezone-naive datetime -> UTC datetime
        - dict/list 내부 재귀적 변환
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        if isinstance(obj, date):
            return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)
        if isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(obj: Any, key: Optional[str] = None) -> Any:
        """
        Firestore(또는 메모리 저장소)에서 읽은 데이터의 시간 필드를 UTC datetime으로 변환

        - Firestore Timestamp / datetime -> UTC datetime
        - DATETIME_FIELDS 이름을 가진 ISO 문자열 -> UTC datetime
        - dict/list 내부 재귀적 변환
        """
        try:
            if isinstance(obj, datetime):
                if obj.tzinfo is None:
                    return obj.replace(tzinfo=timezone.utc)
                return obj.astimezone(timezone.utc)
            if isinstance(obj, dict):
                return {k: DateTimeUtils.from_firestore(v, k) for k, v in obj.items()}
            if isinstance(obj, list):
                return [DateTimeUtils.from_firestore(item, key) for item in obj]
            if isinstance(obj, str) and key in DATETIME_FIELDS:
                return DateTimeUtils.parse_iso_datetime(obj)
            if hasattr(obj, 'timestamp') and callable(obj.timestamp):
                return datetime.fromtimestamp(obj.timestamp(), tz=timezone.utc)
            return obj

        except Exception as e:
            logger.error(f"Firestore 읽기 변환 실패: {obj} ({type(obj)}) - {e}")
            # 변환 실패 시 원본 값을 그대로 둡니다 (로그만 남김)
            return obj
