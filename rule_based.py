import json
import math
from typing import Any, Dict, List, Optional, Tuple

from pydantic_models import NormalizedData, RiskProfile

SUFFICIENT_FIELDS = 2

# (field, predicate, delta, label); evaluation order is factor order
RISK_RULES: List[Tuple[str, Any, int, str]] = [
    ("smoker", lambda v: v is True, 40, "Smoking"),
    ("exercise", lambda v: v == "rarely", 20, "Low Physical Activity"),
    ("diet", lambda v: v == "high sugar", 18, "High Sugar Diet"),
    ("age", lambda v: v is not None and v > 50, 5, "Age > 50"),
]

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 35


def _coerce_age(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(num) or num < 0:
        return None
    return int(num)


def _passthrough(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def normalize_fields(source: Dict[str, Any]) -> NormalizedData:
    """
    Map a loose dict of survey answers onto NormalizedData.
    smoker must already be a boolean; "yes"/1 are treated as absent.
    exercise/diet strings are kept verbatim, so "Rarely" is populated but never scores.
    """
    smoker = source.get("smoker")
    return NormalizedData(
        age=_coerce_age(source.get("age")),
        smoker=smoker if isinstance(smoker, bool) else None,
        exercise=_passthrough(source.get("exercise")),
        diet=_passthrough(source.get("diet")),
    )


def rule_based_extract(raw_input: Any) -> NormalizedData:
    if isinstance(raw_input, dict):
        raw = raw_input
    else:
        try:
            raw = json.loads(raw_input)
        except (TypeError, ValueError):
            return NormalizedData()
    if not isinstance(raw, dict):
        return NormalizedData()

    answers = raw.get("answers")
    source = answers if isinstance(answers, dict) else raw
    return normalize_fields(source)


def count_fields(data: NormalizedData) -> int:
    return sum(1 for v in data.model_dump().values() if v is not None)


def is_sufficient(data: NormalizedData) -> bool:
    return count_fields(data) >= SUFFICIENT_FIELDS


def classify_level(score: int) -> str:
    if score > HIGH_THRESHOLD:
        return "High"
    if score > MEDIUM_THRESHOLD:
        return "Medium"
    return "Low"


def calculate_risk(data: NormalizedData) -> RiskProfile:
    score = 0
    factors = []
    for field, matches, delta, label in RISK_RULES:
        if matches(getattr(data, field)):
            score += delta
            factors.append(label)
    return RiskProfile(score=score, level=classify_level(score), factors=factors)
