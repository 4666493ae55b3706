# config.py: environment settings shared by backend, pipeline and dashboard
import os

# Set OPENAI_API_KEY in env to enable real model calls; otherwise mocks are used
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini").strip()
OPENAI_VISION_MODEL = os.environ.get("OPENAI_VISION_MODEL", OPENAI_MODEL).strip()
LLM_TIMEOUT_SECS = int(os.environ.get("LLM_TIMEOUT_SECS", "15"))

DATA_DIR = os.environ.get("DATA_DIR", os.path.join(os.getcwd(), "data"))
HISTORY_DB = os.environ.get("HISTORY_DB", os.path.join(DATA_DIR, "history.db"))
RAW_LOG = os.environ.get("RAW_LOG", os.path.join(DATA_DIR, "llm_raw_logs.txt"))
HISTORY_LIMIT = int(os.environ.get("HISTORY_LIMIT", "10"))

MAX_UPLOAD_MB = int(os.environ.get("MAX_UPLOAD_MB", "16"))
API_URL = os.environ.get("API_URL", "http://127.0.0.1:5000").rstrip("/")
