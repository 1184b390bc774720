# pawmatch/matching/test_location.py
import math

from pawmatch.models.pet import PetLocation
from pawmatch.matching.location import (
    LocationResolver, LocationSource, parse_coordinates, valid_coordinates, to_point, to_pair
)


def test_parse_coordinates_accepts_both_shapes():
    assert parse_coordinates([34.78, 32.07]) == (34.78, 32.07)
    assert parse_coordinates({"type": "Point", "coordinates": [34.78, 32.07]}) == (34.78, 32.07)
    assert parse_coordinates(["34.78", "32.07"]) == (34.78, 32.07)


def test_parse_coordinates_rejects_malformed_values():
    assert parse_coordinates(None) is None
    assert parse_coordinates([34.78]) is None
    assert parse_coordinates({"type": "Point"}) is None
    assert parse_coordinates(["east", "north"]) is None


def test_valid_coordinates_rejects_sentinel_and_out_of_range():
    assert valid_coordinates([0, 0]) is None
    assert valid_coordinates({"type": "Point", "coordinates": [0.0, 0.0]}) is None
    assert valid_coordinates([181, 10]) is None
    assert valid_coordinates([10, 91]) is None
    assert valid_coordinates([math.nan, 10]) is None
    assert valid_coordinates([0, 10]) == (0.0, 10.0)


def test_missing_values_are_written_as_sentinel():
    assert to_point(None, 32.0) == {"type": "Point", "coordinates": [0.0, 0.0]}
    assert to_pair(34.7, None) == [0.0, 0.0]
    assert to_pair(34.7, 32.0) == [34.7, 32.0]


def test_found_location_wins_over_lost_and_base(make_pet):
    pet = make_pet("p1", base=(34.70, 32.00), last_seen=(34.75, 32.05), found_at=(34.80, 32.10))

    resolved = LocationResolver().resolve(pet)

    assert resolved.kind is LocationSource.FOUND
    assert (resolved.lng, resolved.lat) == (34.80, 32.10)


def test_lost_location_used_when_found_is_sentinel(make_pet):
    pet = make_pet("p1", base=(34.70, 32.00), last_seen=(34.75, 32.05), found_at=(0, 0))

    resolved = LocationResolver().resolve(pet)

    assert resolved.kind is LocationSource.LOST
    assert resolved.coordinates == (34.75, 32.05)


def test_base_location_is_last_resort(make_pet):
    pet = make_pet("p1", base=(34.70, 32.00))
    pet.lost_details = None

    resolved = LocationResolver().resolve(pet)

    assert resolved.kind is LocationSource.BASE
    assert resolved.address == "home"


def test_unresolvable_record_returns_none(make_pet):
    pet = make_pet("p1", last_seen=(0, 0))
    pet.location = PetLocation(address="", coordinates=None)

    assert LocationResolver().resolve(pet) is None
