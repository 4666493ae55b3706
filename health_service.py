"""
Health risk pipeline: parse -> (extract) -> score -> recommend.

Provides:
- run_full_pipeline: orchestrates rule-based extraction -> llm fallback -> scoring -> recommendations
- log_query / load_history: anonymized outcome history in history.db
"""

import hashlib
import json
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import config
from llm_wrapper import extract_health_signals, generate_recommendations
from pydantic_models import HealthReport, NormalizedData, ProcessStep, RiskProfile
from rule_based import calculate_risk, count_fields, is_sufficient, rule_based_extract

INCOMPLETE_REASON = "Unable to extract sufficient health signals"

StepCallback = Callable[[ProcessStep], None]


def _as_text(raw_input: Any) -> str:
    if isinstance(raw_input, str):
        return raw_input
    return json.dumps(raw_input, ensure_ascii=False, sort_keys=True)


def _init_db():
    d = os.path.dirname(config.HISTORY_DB)
    if d:
        os.makedirs(d, exist_ok=True)
    # idempotent create
    conn = sqlite3.connect(config.HISTORY_DB)
    cur = conn.cursor()
    cur.execute("""
    CREATE TABLE IF NOT EXISTS queries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        input_hash TEXT,
        timestamp_utc TEXT,
        engine TEXT,
        risk_level TEXT,
        risk_score INTEGER,
        notes TEXT
    );
    """)
    conn.commit()
    conn.close()


def log_query(input_text: str, engine: str, risk_level: Optional[str], risk_score: Optional[int], notes: str = ""):
    _init_db()
    h = hashlib.sha256(input_text.strip().lower().encode("utf-8")).hexdigest()
    conn = sqlite3.connect(config.HISTORY_DB)
    cur = conn.cursor()
    cur.execute("INSERT INTO queries (input_hash, timestamp_utc, engine, risk_level, risk_score, notes) VALUES (?, datetime('now'), ?, ?, ?, ?)",
                (h, engine, risk_level, risk_score, notes))
    conn.commit()
    conn.close()


def load_history(limit: int = None) -> List[Dict[str, Any]]:
    if limit is None:
        limit = config.HISTORY_LIMIT
    if limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit}")
    _init_db()
    conn = sqlite3.connect(config.HISTORY_DB)
    conn.row_factory = sqlite3.Row
    rows = conn.execute("SELECT * FROM queries ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def run_full_pipeline(raw_input: Any, on_step_change: Optional[StepCallback] = None) -> HealthReport:
    """
    Primary orchestration:
    - rule-based extraction (no network)
    - llm extraction only if fewer than 2 fields came out
    - incomplete_profile short-circuit
    - deterministic scoring, then llm recommendations
    Unexpected exceptions propagate to the caller.
    """
    def emit(step: ProcessStep):
        if on_step_change is not None:
            on_step_change(step)

    text = _as_text(raw_input)

    emit(ProcessStep.PARSING)
    data = rule_based_extract(raw_input)
    engine = "rule_based"

    if not is_sufficient(data):
        emit(ProcessStep.EXTRACTING)
        data = extract_health_signals(text)
        engine = "llm"

    if not is_sufficient(data):
        log_query(text, "incomplete", None, None, f"fields={count_fields(data)}")
        return HealthReport(status="incomplete_profile", reason=INCOMPLETE_REASON)

    emit(ProcessStep.SCORING)
    risk = calculate_risk(data)

    emit(ProcessStep.RECOMMENDING)
    recommendations = generate_recommendations(data, risk)

    emit(ProcessStep.COMPLETED)
    log_query(text, engine, risk.level, risk.score, f"recommendations={len(recommendations)}")
    return HealthReport(
        status="complete",
        normalized_data=data,
        risk_profile=risk,
        recommendations=recommendations,
        raw_output=_raw_trace(engine, data, risk, recommendations),
    )


def _raw_trace(engine: str, data: NormalizedData, risk: RiskProfile, recommendations) -> Dict[str, Any]:
    return {
        "extracted_via": engine,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data.model_dump(mode="json"),
        "risk": risk.model_dump(mode="json"),
        "recommendations": [r.model_dump(mode="json") for r in recommendations],
    }
