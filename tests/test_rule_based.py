import pytest

from pydantic_models import NormalizedData
from rule_based import (
    calculate_risk,
    classify_level,
    count_fields,
    is_sufficient,
    rule_based_extract,
)


def test_answers_object_is_field_source():
    data = rule_based_extract('{"answers": {"age": 42, "smoker": true, "exercise": "rarely", "diet": "high sugar"}}')
    assert data == NormalizedData(age=42, smoker=True, exercise="rarely", diet="high sugar")


def test_top_level_used_without_answers():
    data = rule_based_extract({"age": "61", "exercise": "regularly"})
    assert data.age == 61
    assert data.exercise == "regularly"
    assert data.smoker is None


def test_non_object_answers_falls_back_to_top_level():
    data = rule_based_extract({"answers": "n/a", "age": 30, "diet": "balanced"})
    assert data == NormalizedData(age=30, diet="balanced")


@pytest.mark.parametrize("raw", ["I smoke a lot and never exercise", "", "[1, 2]", "42", None])
def test_unparseable_or_non_object_gives_empty_record(raw):
    assert rule_based_extract(raw) == NormalizedData()


@pytest.mark.parametrize("smoker", ["yes", 1, "true", None])
def test_smoker_must_be_boolean(smoker):
    assert rule_based_extract({"smoker": smoker}).smoker is None


def test_smoker_false_is_populated():
    data = rule_based_extract({"smoker": False, "age": 20})
    assert data.smoker is False
    assert count_fields(data) == 2


@pytest.mark.parametrize("age,expected", [(42, 42), ("42", 42), (42.9, 42), ("abc", None), (-3, None), (True, None)])
def test_age_coercion(age, expected):
    assert rule_based_extract({"age": age}).age == expected


def test_choices_pass_through_unchanged():
    data = rule_based_extract({"exercise": "daily", "diet": "keto"})
    assert data.exercise == "daily"
    assert data.diet == "keto"
    assert is_sufficient(data)


def test_non_string_choices_are_absent():
    data = rule_based_extract({"exercise": 3, "diet": ["sugar"]})
    assert data.exercise is None
    assert data.diet is None


def test_capitalized_choices_do_not_trigger_rules():
    data = rule_based_extract({"smoker": True, "exercise": "Rarely", "diet": "High Sugar"})
    assert data.exercise == "Rarely"
    risk = calculate_risk(data)
    assert risk.score == 40
    assert risk.level == "Medium"
    assert risk.factors == ["Smoking"]


def test_sufficiency_boundary():
    assert not is_sufficient(NormalizedData(age=30))
    assert is_sufficient(NormalizedData(age=30, smoker=False))


def test_full_record_scores_all_factors_in_order():
    risk = calculate_risk(NormalizedData(age=55, smoker=True, exercise="rarely", diet="high sugar"))
    assert risk.score == 83
    assert risk.level == "High"
    assert risk.factors == ["Smoking", "Low Physical Activity", "High Sugar Diet", "Age > 50"]


def test_age_42_does_not_trigger_age_rule():
    risk = calculate_risk(NormalizedData(age=42, smoker=True, exercise="rarely", diet="high sugar"))
    assert risk.score == 78
    assert risk.level == "High"
    assert "Age > 50" not in risk.factors


def test_age_exactly_50_not_counted():
    assert calculate_risk(NormalizedData(age=50)).score == 0


def test_empty_record_scores_zero():
    risk = calculate_risk(NormalizedData())
    assert (risk.score, risk.level, risk.factors) == (0, "Low", [])


@pytest.mark.parametrize("score,level", [(0, "Low"), (35, "Low"), (36, "Medium"), (70, "Medium"), (71, "High"), (500, "High")])
def test_level_thresholds(score, level):
    assert classify_level(score) == level


def test_scoring_is_pure():
    data = NormalizedData(age=70, exercise="rarely", diet="high sugar")
    assert calculate_risk(data) == calculate_risk(data)
    assert calculate_risk(data).factors == ["Low Physical Activity", "High Sugar Diet", "Age > 50"]


@pytest.mark.parametrize("base", [
    {},
    {"smoker": False, "exercise": "regularly"},
    {"age": 30, "diet": "balanced"},
    {"smoker": True, "age": 20},
])
@pytest.mark.parametrize("trigger", [
    {"smoker": True},
    {"exercise": "rarely"},
    {"diet": "high sugar"},
    {"age": 51},
])
def test_adding_a_condition_never_lowers_score(base, trigger):
    before = calculate_risk(NormalizedData(**base)).score
    after = calculate_risk(NormalizedData(**{**base, **trigger})).score
    assert after >= before
