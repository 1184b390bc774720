# conftest.py
import pytest
from flask_jwt_extended import create_access_token

from pawmatch import create_app
from pawmatch.models.pet import PetRecord, PetLocation, LostDetails, FoundDetails
from pawmatch.matching.location import to_point, to_pair
from pawmatch.services.memory_pet_store import InMemoryPetStore


@pytest.fixture
def store():
    return InMemoryPetStore()


@pytest.fixture
def make_pet():
    """
    테스트용 PetRecord 팩토리.
    base/found는 GeoJSON Point, last_seen은 [lng, lat] 배열로 저장 형식에 맞춰 만듭니다.
    좌표 인자는 (lng, lat) 튜플입니다.
    """
    def _make(pet_id, species="dog", owner_id="owner-1", base=None, last_seen=None, found_at=None, **kwargs):
        base_coords = to_point(*base) if base else to_point(None, None)
        name = kwargs.pop('name', pet_id)
        record = PetRecord(
            pet_id=pet_id, owner_id=owner_id, name=name, species=species,
            location=PetLocation(address="home", coordinates=base_coords),
            **kwargs,
        )
        if last_seen is not None:
            record.is_lost = kwargs.get('is_lost', True)
            record.lost_details = LostDetails(last_seen=PetLocation(address="last seen", coordinates=to_pair(*last_seen)))
        if found_at is not None:
            record.is_found = kwargs.get('is_found', True)
            record.found_details = FoundDetails(location=PetLocation(address="found", coordinates=to_point(*found_at)))
        return record
    return _make


@pytest.fixture
def app():
    app = create_app('testing')
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_store(app):
    return app.services['pet_store']


@pytest.fixture
def auth_headers(app):
    def _headers(user_id="owner-1"):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return _headers
