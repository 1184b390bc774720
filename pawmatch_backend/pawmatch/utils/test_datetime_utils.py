# pawmatch/utils/test_datetime_utils.py
"""
시간 유틸리티 테스트

사용법: python -m pytest pawmatch/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, date, timezone
from pawmatch.utils.datetime_utils import DateTimeUtils


def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123456Z",
        "2024-01-15T10:30:00"
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc  # UTC로 정규화되어야 함

    kst = DateTimeUtils.parse_iso_datetime("2024-01-15T10:30:00+09:00")
    assert kst.hour == 1


def test_for_firestore():
    """Firestore 변환 테스트"""
    test_data = {
        'birthday': date(2020, 1, 15),
        'created_at': datetime(2024, 1, 15, 10, 30),
        'lost_details': {'date_lost': date(2023, 12, 25)},
        'match_results': [{'matched_at': datetime(2024, 1, 1)}]
    }

    converted = DateTimeUtils.for_firestore(test_data)

    assert isinstance(converted['birthday'], datetime)
    assert isinstance(converted['lost_details']['date_lost'], datetime)
    assert converted['match_results'][0]['matched_at'].tzinfo == timezone.utc
    assert converted['birthday'].tzinfo == timezone.utc


def test_from_firestore_parses_known_string_fields_only():
    data = {
        'created_at': "2024-01-15T10:30:00Z",
        'name': "2024-01-15T10:30:00Z",
        'found_details': {'date_found': "2024-02-01T00:00:00Z"},
    }

    converted = DateTimeUtils.from_firestore(data)

    assert converted['created_at'] == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert converted['found_details']['date_found'].tzinfo == timezone.utc
    # 시간 필드가 아닌 문자열은 그대로 유지
    assert converted['name'] == "2024-01-15T10:30:00Z"


def test_error_handling():
    """오류 처리 테스트"""
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("invalid-date")

    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("")
