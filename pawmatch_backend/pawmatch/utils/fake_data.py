# pawmatch/utils/fake_data.py
"""
개발/데모용 가짜 반려동물 데이터 생성기.

같은 seed를 주면 항상 같은 레코드 목록을 만듭니다.
위치는 이스라엘 주요 도시 주변(약 ±0.005도)에 흩어지며,
약 12%는 분실, 약 6%는 발견 상태로 생성됩니다.
"""
import logging
import random
from datetime import timedelta
from typing import List, Tuple

from pawmatch.models.pet import PetRecord, PetLocation, LostDetails, FoundDetails, Weight
from pawmatch.matching.location import to_point, to_pair
from pawmatch.services.pet_store import PetStore, PetFilter
from pawmatch.utils.datetime_utils import DateTimeUtils

PET_SPECIES = ["dog", "cat", "bird", "ferret", "fish", "rabbit", "horse", "other"]
DOG_BREEDS = [
    "Labrador Retriever", "German Shepherd", "Golden Retriever", "Bulldog", "Beagle",
    "Poodle", "Rottweiler", "Yorkshire Terrier", "Boxer", "Dachshund",
]
CAT_BREEDS = [
    "Persian", "Maine Coon", "Siamese", "Ragdoll", "British Shorthair",
    "Abyssinian", "Russian Blue", "Sphynx", "Bengal", "Scottish Fold",
]
PET_COLORS = ["black", "white", "brown", "golden", "grey"]
EYE_COLORS = ["blue", "green", "brown", "hazel", "grey"]

# (도시명, (lng, lat))
ISRAELI_CITIES: List[Tuple[str, Tuple[float, float]]] = [
    ("Tel Aviv", (34.7818, 32.0853)),
    ("Jerusalem", (35.2137, 31.7683)),
    ("Haifa", (34.9896, 32.794)),
    ("Rishon LeZion", (34.8044, 31.9545)),
    ("Petah Tikva", (34.8726, 32.084)),
    ("Ashdod", (34.65, 31.8)),
    ("Netanya", (34.8599, 32.3328)),
    ("Beer Sheva", (34.797, 31.2518)),
    ("Holon", (34.779, 32.0167)),
    ("Bnei Brak", (34.8333, 32.0833)),
]

_STREETS = ["Main St", "Oak Ave", "Pine Rd", "Elm St", "Cedar Ln", "Maple Dr"]
_NOTES = [
    "This is a sample description for testing purposes.",
    "Very friendly, answers to its name.",
    "Wearing a red collar when last seen.",
    "Shy around strangers, please approach slowly.",
    "Has a small scar on the left ear.",
]


class FakePetGenerator:
    def __init__(self, seed: int = 42, owner_count: int = 10):
        self.rng = random.Random(seed)
        self.owner_ids = [f"seed-user-{i + 1}" for i in range(owner_count)]

    def _near(self, city_coords: Tuple[float, float]) -> Tuple[float, float]:
        lng, lat = city_coords
        return (round(lng + (self.rng.random() - 0.5) * 0.01, 6),
                round(lat + (self.rng.random() - 0.5) * 0.01, 6))

    def _address(self, city: str) -> str:
        return f"{self.rng.randint(1, 999)} {self.rng.choice(_STREETS)}, {city}"

    def _past(self, max_days: int):
        return DateTimeUtils.now() - timedelta(days=self.rng.randint(0, max_days), minutes=self.rng.randint(0, 1439))

    def make_pet(self, index: int) -> PetRecord:
        rng = self.rng
        species = rng.choice(PET_SPECIES)
        if species == "dog":
            breed = rng.choice(DOG_BREEDS)
        elif species == "cat":
            breed = rng.choice(CAT_BREEDS)
        else:
            breed = rng.choice(["Mixed", "Purebred", "Unknown"])

        city, city_coords = rng.choice(ISRAELI_CITIES)
        home_lng, home_lat = self._near(city_coords)

        roll = rng.random()
        is_lost = roll < 0.12
        is_found = not is_lost and roll < 0.18

        lost_details = None
        if is_lost:
            lng, lat = self._near(city_coords)
            lost_details = LostDetails(
                date_lost=self._past(365),
                last_seen=PetLocation(address=self._address(city), coordinates=to_pair(lng, lat)),
                notes=rng.choice(_NOTES),
            )

        found_details = None
        if is_found:
            lng, lat = self._near(city_coords)
            found_details = FoundDetails(
                date_found=self._past(365),
                location=PetLocation(address=self._address(city), coordinates=to_point(lng, lat)),
                notes=rng.choice(_NOTES),
            )

        unit = "g" if species in ("bird", "fish") else "kg"
        weight_value = round(rng.uniform(1, 50), 1) if unit == "kg" else float(rng.randint(50, 5000))

        return PetRecord(
            pet_id=f"seed-pet-{index + 1}",
            owner_id=rng.choice(self.owner_ids),
            name=f"Pet{index + 1}",
            species=species,
            breed=breed,
            age=float(rng.randint(1, 15)),
            birthday=self._past(15 * 365),
            fur_color=rng.choice(PET_COLORS),
            eye_color=rng.choice(EYE_COLORS),
            weight=Weight(value=weight_value, unit=unit),
            images=[f"https://picsum.photos/400/300?random={rng.randint(1, 1000)}"],
            description=rng.choice(_NOTES),
            phone_numbers=[f"05{rng.randint(0, 9)}-{rng.randint(100, 999)}-{rng.randint(1000, 9999)}"],
            is_lost=is_lost,
            is_found=is_found,
            location=PetLocation(address=self._address(city), coordinates=to_point(home_lng, home_lat)),
            lost_details=lost_details,
            found_details=found_details,
            vaccinated=rng.random() < 0.8,
            microchipped=rng.random() < 0.6,
        )

    def generate(self, count: int) -> List[PetRecord]:
        return [self.make_pet(i) for i in range(count)]


def seed_store(store: PetStore, count: int = 50, seed: int = 42, force: bool = False) -> int:
    """
    저장소가 비어 있을 때만 가짜 레코드를 채웁니다. 삽입한 개수를 반환합니다.
    force=True이면 기존 레코드가 있어도 새 id로 덮어씁니다.
    """
    existing = store.count_matching(PetFilter())
    if existing and not force:
        logging.info(f"Skipping seeding: store already has {existing} pets.")
        return 0

    inserted = 0
    for record in FakePetGenerator(seed=seed).generate(count):
        if store.get(record.pet_id) is not None:
            store.save(record)
        else:
            store.insert(record)
        inserted += 1
    logging.info(f"Seeded {inserted} fake pets (seed={seed}).")
    return inserted
