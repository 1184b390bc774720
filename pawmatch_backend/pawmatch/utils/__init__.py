# pawmatch/utils/__init__.py
"""
유틸리티 모듈 패키지

시간 처리(datetime_utils)와 개발용 가짜 데이터 생성(fake_data)을 포함합니다.
"""

from .datetime_utils import DateTimeUtils

__all__ = ['DateTimeUtils']
