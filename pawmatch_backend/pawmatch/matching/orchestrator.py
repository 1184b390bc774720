# pawmatch/matching/orchestrator.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pawmatch.models.pet import PetRecord
from pawmatch.matching.errors import PetNotFoundError
from pawmatch.matching.proximity import ProximitySearch
from pawmatch.matching.ranking import DistanceRanker, RankedPet
from pawmatch.matching.scoring import AttributeMatcher
from pawmatch.services.pet_store import PetStore, PetFilter, MATCH_RESULTS_FIELD
from pawmatch.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

# 소유자 매칭 목록에서 비교 쌍이 이 수를 넘으면 경고합니다.
DEFAULT_CROSS_PRODUCT_WARN_LIMIT = 10000


@dataclass
class SearchQuery:
    species: Optional[str] = None
    name_contains: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius_km: Optional[float] = None
    limit: int = 20
    offset: int = 0

    @property
    def is_geo(self) -> bool:
        return self.lat is not None and self.lng is not None and self.radius_km is not None

    def to_filter(self) -> PetFilter:
        return PetFilter(species=self.species, name_contains=self.name_contains, lost_or_found=True)


@dataclass
class SearchPage:
    items: List[RankedPet]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.total > self.offset + self.limit


@dataclass
class CandidateMatch:
    """요청마다 생성되는 매칭 후보. 저장되지 않습니다."""
    lost_record: PetRecord
    found_record: Any  # PetRecord 또는 저장 전 발견 신고 초안(dict)
    score: float


@dataclass
class OwnerMatch:
    lost_id: str
    lost_name: str
    found_id: str
    found_name: str
    score: float
    found_pet: PetRecord
    matched_at: datetime = field(default_factory=DateTimeUtils.now)


@dataclass
class ConfirmationResult:
    pet: PetRecord
    others_cleared: bool
    cleared_count: int = 0


class MatchOrchestrator:
    """검색, 매칭 탐색, 매칭 확정을 담당하는 공개 진입점."""

    def __init__(self, store: PetStore, matcher: AttributeMatcher,
                 proximity: ProximitySearch, ranker: DistanceRanker,
                 cross_product_warn_limit: int = DEFAULT_CROSS_PRODUCT_WARN_LIMIT):
        self.store = store
        self.matcher = matcher
        self.proximity = proximity
        self.ranker = ranker
        self.cross_product_warn_limit = cross_product_warn_limit

    # --- 검색 ---
    def search(self, query: SearchQuery) -> SearchPage:
        pet_filter = query.to_filter()

        if not query.is_geo:
            # 위치 조건이 없으면 저장소 페이지네이션을 그대로 사용합니다.
            total = self.store.count_matching(pet_filter)
            records = self.store.find(pet_filter, offset=query.offset, limit=query.limit)
            return SearchPage(items=self.ranker.unranked(records),
                              total=total, limit=query.limit, offset=query.offset)

        merged = self.proximity.search(query.lat, query.lng, query.radius_km, pet_filter)
        ranked = self.ranker.rank(merged, query.lat, query.lng)
        # 병합 결과에는 저장소의 정렬이 남아있지 않으므로 정렬 후에만 자릅니다.
        page = self.ranker.paginate(ranked, query.offset, query.limit)
        return SearchPage(items=page, total=len(ranked), limit=query.limit, offset=query.offset)

    # --- 매칭 탐색 ---
    def find_candidates(self, draft: Dict[str, Any]) -> List[CandidateMatch]:
        """
        저장 전 발견 신고 초안과 현재 분실 상태인 모든 레코드를 비교합니다.
        초안에는 안정적인 id가 없으므로 거리 계산은 하지 않습니다.
        """
        lost_pets = self.store.find(PetFilter(is_lost=True, is_found=False))
        matches = []
        for lost in lost_pets:
            score = self.matcher.score(lost, draft)
            if self.matcher.is_plausible(score):
                matches.append(CandidateMatch(lost_record=lost, found_record=draft, score=score))

        matches.sort(key=lambda m: (-m.score, m.lost_record.pet_id))
        logger.info(f"find_candidates: {len(matches)}/{len(lost_pets)} lost pets above threshold {self.matcher.threshold}")
        return matches

    def list_my_matches(self, owner_id: str) -> List[OwnerMatch]:
        """
        소유자의 분실 레코드 × 모든 발견 레코드를 비교합니다.
        위치 사전 필터와 페이지네이션이 없는 전체 교차 비교라 데이터가 많아지면 느려집니다.
        """
        lost_pets = self.store.find(PetFilter(owner_id=owner_id, is_lost=True))
        found_pets = self.store.find(PetFilter(is_found=True, is_lost=False))
        if len(lost_pets) * len(found_pets) > self.cross_product_warn_limit:
            logger.warning(f"list_my_matches cross-product is large: {len(lost_pets)} x {len(found_pets)} (owner {owner_id})")

        matches = []
        for lost in lost_pets:
            for found in found_pets:
                score = self.matcher.score(lost, found)
                logger.debug(f"score lost={lost.pet_id} found={found.pet_id}: {score}")
                if self.matcher.is_plausible(score):
                    matches.append(OwnerMatch(
                        lost_id=lost.pet_id, lost_name=lost.name,
                        found_id=found.pet_id, found_name=found.name,
                        score=score, found_pet=found,
                    ))

        matches.sort(key=lambda m: m.matched_at, reverse=True)
        return matches

    # --- 매칭 확정 ---
    def confirm_match(self, lost_id: str, found_id: str, caller_id: str) -> ConfirmationResult:
        lost = self.store.get(lost_id)
        if lost is None:
            raise PetNotFoundError(lost_id)
        if lost.owner_id != caller_id:
            raise PermissionError("매칭을 확정할 권한이 없습니다.")
        if self.store.get(found_id) is None:
            raise PetNotFoundError(found_id)

        lost.is_lost = False
        lost.is_found = False
        lost.match_results = []
        lost.updated_at = DateTimeUtils.now()
        self.store.save(lost)
        logger.info(f"Match confirmed: lost pet {lost_id} <- found pet {found_id} by {caller_id}")

        # 다른 레코드에 남아 있는 found_id 매칭 기록을 한 번의 일괄 연산으로 제거합니다.
        try:
            cleared = self.store.bulk_pull(
                PetFilter(references_match=found_id, exclude_id=lost_id),
                MATCH_RESULTS_FIELD,
                {'pet_id': found_id},
            )
        except Exception as e:
            logger.error(f"Failed to clear stale match results for found pet {found_id} "
                         f"after confirming {lost_id}: {e}", exc_info=True)
            return ConfirmationResult(pet=lost, others_cleared=False)

        return ConfirmationResult(pet=lost, others_cleared=True, cleared_count=cleared)
