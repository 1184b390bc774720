# pawmatch/matching/test_scoring.py
import pytest

from pawmatch.matching.scoring import AttributeMatcher, MatchWeights


@pytest.fixture
def matcher():
    return AttributeMatcher(threshold=3.0)


def test_species_mismatch_scores_zero_regardless_of_other_attributes(matcher):
    lost = {"species": "dog", "breed": "Beagle", "fur_color": "brown", "eye_color": "brown", "age": 3}
    found = {"species": "cat", "breed": "Beagle", "fur_color": "brown", "eye_color": "brown", "age": 3}
    assert matcher.score(lost, found) == 0.0


def test_full_match_score(matcher):
    lost = {"species": "Dog", "breed": "beagle ", "fur_color": "Brown", "eye_color": "brown", "age": 3}
    found = {"species": "dog", "breed": "Beagle", "fur_color": "brown", "eye_color": "Brown", "age": 3.5}
    # species 2 + breed 2 + fur 1 + eye 1 + age 1
    assert matcher.score(lost, found) == 7.0


def test_partial_fur_color_and_near_age(matcher):
    lost = {"species": "dog", "fur_color": "dark brown", "age": 2}
    found = {"species": "dog", "fur_color": "brown", "age": 4.5}
    assert matcher.score(lost, found) == pytest.approx(2 + 0.5 + 0.5)


def test_threshold_is_inclusive(matcher):
    # species 2 + fur 1 = 3
    at_threshold = matcher.score({"species": "cat", "fur_color": "grey"}, {"species": "cat", "fur_color": "grey"})
    below = matcher.score({"species": "cat", "fur_color": "dark grey"}, {"species": "cat", "fur_color": "grey"})

    assert at_threshold == 3.0
    assert matcher.is_plausible(at_threshold)
    assert not matcher.is_plausible(below)


def test_missing_attributes_contribute_nothing(matcher):
    assert matcher.score({"species": "dog", "breed": None}, {"species": "dog", "breed": None}) == 2.0
    assert matcher.score({"species": None}, {"species": None}) == 0.0


def test_records_and_dicts_are_interchangeable(matcher, make_pet):
    lost = make_pet("lost-1", species="dog", breed="Poodle", age=5.0)
    assert matcher.score(lost, {"species": "dog", "breed": "poodle", "age": "5"}) == 5.0


def test_custom_weights():
    matcher = AttributeMatcher(weights=MatchWeights(breed=0.0), threshold=2.0)
    assert matcher.score({"species": "dog", "breed": "Pug"}, {"species": "dog", "breed": "Pug"}) == 2.0
