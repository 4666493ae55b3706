from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Level = Literal["Low", "Medium", "High"]


class ProcessStep(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    SCORING = "scoring"
    RECOMMENDING = "recommending"
    COMPLETED = "completed"
    ERROR = "error"


class NormalizedData(BaseModel):
    model_config = ConfigDict(frozen=True)

    age: Optional[int] = Field(default=None, ge=0)
    smoker: Optional[bool] = None
    # passed through as given; scoring only reacts to exact "rarely" / "high sugar"
    exercise: Optional[str] = None
    diet: Optional[str] = None


class RiskProfile(BaseModel):
    score: int = Field(..., ge=0)
    level: Level
    factors: List[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    area: str
    advice: str
    priority: Level


class HealthReport(BaseModel):
    status: Literal["complete", "incomplete_profile"]
    reason: Optional[str] = None
    normalized_data: Optional[NormalizedData] = None
    risk_profile: Optional[RiskProfile] = None
    recommendations: List[Recommendation] = Field(default_factory=list)
    raw_output: Optional[Dict[str, Any]] = None
