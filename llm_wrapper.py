"""
Remote model collaborators for the health risk pipeline.

Provides:
- call_openai_llm / call_openai_vision: call OpenAI (if key present) or mock; log raw outputs
- parse_json_payload: robust JSON extraction from model output
- extract_health_signals: fallback semantic extraction of NormalizedData from free text
- generate_recommendations: three schema-constrained wellness recommendations
- ocr_survey_image: survey form image -> JSON text for the pipeline input
"""

import base64
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI
from pydantic import ValidationError

import config
from pydantic_models import NormalizedData, Recommendation, RiskProfile
from rule_based import normalize_fields

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 3

EXTRACT_SYSTEM = "You extract health lifestyle signals. Output ONLY valid JSON with no extra text."
RECOMMEND_SYSTEM = "You are a health informatics assistant. Give ONLY wellness advice (no diagnosis, no medication)."

# literal templates with {placeholders} replaced via str.replace (not .format)
EXTRACT_PROMPT = """
Extract health lifestyle signals from the paragraph.
Return JSON ONLY.

Paragraph:
"{text}"

Schema:
{
  "age": number | null,
  "smoker": boolean | null,
  "exercise": "rarely" | "occasionally" | "regularly" | null,
  "diet": "high sugar" | "balanced" | "poor" | "unknown" | null
}

Rules:
- Infer meaning semantically
- Handle negations ("quit smoking" = false)
- If unsure, return null
"""

RECOMMEND_PROMPT = """
Patient Data:
{data}

Risk:
Score {score}/100
Level {level}
Factors: {factors}

Return exactly 3 recommendations in JSON as {"recommendations": [{"area": "", "advice": "", "priority": "High|Medium|Low"}]}.
"""

OCR_PROMPT = """
Analyze this health survey form image. Extract the following fields: age, smoker (boolean), exercise, and diet.
Return the data strictly in this JSON format:
{
  "answers": {"age": number, "smoker": boolean, "exercise": string, "diet": string},
  "missing_fields": string[],
  "confidence": number
}
If more than 50% of the fields are missing or unreadable, return:
{"status":"incomplete_profile","reason":">50% fields missing"}
"""

RECOMMENDATIONS_SCHEMA = {
    "name": "recommendations",
    "strict": True,
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "required": ["recommendations"],
        "properties": {
            "recommendations": {
                "type": "array",
                "items": {
                    "type": "object",
                    "additionalProperties": False,
                    "required": ["area", "advice", "priority"],
                    "properties": {
                        "area": {"type": "string"},
                        "advice": {"type": "string"},
                        "priority": {"type": "string", "enum": ["High", "Medium", "Low"]},
                    },
                },
            }
        },
    },
}


def use_openai() -> bool:
    return bool(config.OPENAI_API_KEY)


# Mock LLM: well-formed JSON strings shaped like each real response
def mock_llm(kind: str) -> str:
    if kind == "extract":
        out: Any = {"age": None, "smoker": None, "exercise": None, "diet": None}
    elif kind == "recommend":
        out = {"recommendations": [
            {"area": "Physical Activity", "advice": "Aim for 30 minutes of moderate movement most days.", "priority": "High"},
            {"area": "Nutrition", "advice": "Swap sugary drinks for water and add vegetables to each meal.", "priority": "Medium"},
            {"area": "Check-ups", "advice": "Keep up routine wellness check-ups with a clinician.", "priority": "Low"},
        ]}
    elif kind == "ocr":
        out = {"status": "incomplete_profile", "reason": ">50% fields missing"}
    else:
        raise ValueError(f"Unknown mock kind: {kind}")
    return json.dumps(out, ensure_ascii=False)


def _append_raw_log(header: str, text: str) -> None:
    try:
        d = os.path.dirname(config.RAW_LOG)
        if d:
            os.makedirs(d, exist_ok=True)
        with open(config.RAW_LOG, "a", encoding="utf-8") as f:
            f.write(f"----{header}----\n")
            f.write(text + "\n")
    except OSError as e:
        # raw log is best-effort; never fail a model call over it
        logger.warning("could not write raw log %s: %s", config.RAW_LOG, e)


def _get_client() -> OpenAI:
    return OpenAI(api_key=config.OPENAI_API_KEY, timeout=config.LLM_TIMEOUT_SECS)


def _complete(kind: str, messages: List[Dict[str, Any]], model: str,
              response_format: Optional[Dict[str, Any]] = None) -> str:
    """
    Returns raw model text, the mock output, or "" when the API call fails.
    Always appends the raw output (or the error) to RAW_LOG.
    """
    if not use_openai():
        raw = mock_llm(kind)
        _append_raw_log(f"MOCK CALL {kind}", raw)
        return raw

    try:
        resp = _get_client().chat.completions.create(
            model=model,
            messages=messages,
            temperature=0.0,
            max_tokens=700,
            response_format=response_format or {"type": "json_object"},
        )
        text = resp.choices[0].message.content or ""
    except openai.OpenAIError as e:
        _append_raw_log(f"OPENAI_ERROR {kind}", f"{type(e).__name__}: {e}")
        return ""
    _append_raw_log(f"CALL {kind}", text)
    return text


def call_openai_llm(kind: str, system_msg: str, user_msg: str,
                    response_format: Optional[Dict[str, Any]] = None) -> str:
    messages = [{"role": "system", "content": system_msg}, {"role": "user", "content": user_msg}]
    return _complete(kind, messages, config.OPENAI_MODEL, response_format)


def call_openai_vision(kind: str, prompt: str, image_bytes: bytes, mime_type: str) -> str:
    data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('utf-8')}"
    messages = [{
        "role": "user",
        "content": [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": data_url}},
        ],
    }]
    return _complete(kind, messages, config.OPENAI_VISION_MODEL)


def parse_json_payload(raw_text: str) -> Any:
    """
    Extract the largest JSON object/array from raw_text.
    Tolerates code fences, surrounding prose, trailing commas and single quotes.
    Raises ValueError when nothing parseable is found.
    """
    raw = (raw_text or "").strip()
    # strip triple-backtick fences if present
    if raw.startswith("```") and raw.endswith("```"):
        raw = "\n".join([l for l in raw.splitlines() if not l.strip().startswith("```")]).strip()

    # find largest balanced {...} or [...] block
    candidates = []
    for start_ch, end_ch in [("{", "}"), ("[", "]")]:
        for m in re.finditer(re.escape(start_ch), raw):
            si = m.start()
            depth = 0
            for j in range(si, len(raw)):
                if raw[j] == start_ch:
                    depth += 1
                elif raw[j] == end_ch:
                    depth -= 1
                    if depth == 0:
                        candidates.append(raw[si:j + 1])
                        break
    if not candidates:
        raise ValueError("Could not locate JSON in LLM output")
    candidate = max(candidates, key=len)

    try:
        return json.loads(candidate)
    except ValueError:
        s2 = re.sub(r",\s*([}\]])", r"\1", candidate)  # remove trailing commas
        try:
            return json.loads(s2)
        except ValueError:
            return json.loads(s2.replace("'", '"'))


def extract_health_signals(text: str) -> NormalizedData:
    raw = call_openai_llm("extract", EXTRACT_SYSTEM, EXTRACT_PROMPT.replace("{text}", text))
    try:
        parsed = parse_json_payload(raw)
    except ValueError:
        return NormalizedData()
    if not isinstance(parsed, dict):
        return NormalizedData()
    return normalize_fields(parsed)


def generate_recommendations(data: NormalizedData, risk: RiskProfile) -> List[Recommendation]:
    user_msg = (
        RECOMMEND_PROMPT
        .replace("{data}", json.dumps(data.model_dump(exclude_none=True), indent=2))
        .replace("{score}", str(risk.score))
        .replace("{level}", risk.level)
        .replace("{factors}", ", ".join(risk.factors) or "None")
    )
    raw = call_openai_llm(
        "recommend", RECOMMEND_SYSTEM, user_msg,
        response_format={"type": "json_schema", "json_schema": RECOMMENDATIONS_SCHEMA},
    )
    try:
        parsed = parse_json_payload(raw)
    except ValueError:
        return []

    items = parsed.get("recommendations", []) if isinstance(parsed, dict) else parsed
    if not isinstance(items, list):
        return []

    recs = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            recs.append(Recommendation(**item))
        except ValidationError:
            continue
        if len(recs) == MAX_RECOMMENDATIONS:
            break
    return recs


def ocr_survey_image(image_bytes: bytes, mime_type: str) -> str:
    """
    Returns pretty-printed JSON text ready to feed into the pipeline input.
    Raises ValueError when the model output is not JSON.
    """
    raw = call_openai_vision("ocr", OCR_PROMPT, image_bytes, mime_type)
    parsed = parse_json_payload(raw)
    return json.dumps(parsed, indent=2, ensure_ascii=False)
