"""
분실/발견 반려동물 매칭 엔진

위치 선택(LocationResolver) → 근접 검색(ProximitySearch) → 거리 정렬(DistanceRanker)
→ 속성 점수(AttributeMatcher)를 MatchOrchestrator가 묶어 제공합니다.
"""

from .errors import PetNotFoundError, ProximitySearchError
from .location import LocationResolver, LocationSource, ResolvedLocation
from .proximity import ProximitySearch, GeoField, GeoShape
from .ranking import DistanceRanker, RankedPet, format_distance
from .scoring import AttributeMatcher, MatchWeights, DEFAULT_MATCH_THRESHOLD
from .orchestrator import MatchOrchestrator, SearchQuery, SearchPage

__all__ = [
    'PetNotFoundError', 'ProximitySearchError',
    'LocationResolver', 'LocationSource', 'ResolvedLocation',
    'ProximitySearch', 'GeoField', 'GeoShape',
    'DistanceRanker', 'RankedPet', 'format_distance',
    'AttributeMatcher', 'MatchWeights', 'DEFAULT_MATCH_THRESHOLD',
    'MatchOrchestrator', 'SearchQuery', 'SearchPage',
]
