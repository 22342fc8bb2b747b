"""
Central configuration for the JSON translation tool.

Every value can be overridden from the environment or a ``.env`` file next to
this project (see ``.env.example``); command-line flags in ``main.py`` take
precedence over both.

KEYS_TO_EXCLUDE: comma-separated object keys whose values are never sent for
translation, e.g. "id,url,slug". Matching is exact and only applies to
object keys, not to positions inside arrays.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ── Remote service ─────────────────────────────────────────────────────────────
OLLAMA_API_URL = os.getenv("OLLAMA_API_URL", "http://localhost:11434")
MODEL          = os.getenv("OLLAMA_MODEL", "llama2")

# Hard limit for a single generation call, in seconds. Large strings on a
# local model can be slow, so the default is 30 minutes.
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "1800"))

# Attempts per string on connection errors (1 = no retry). HTTP errors and
# empty answers are never retried: the string is kept untranslated.
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", "1"))

# ── Languages ──────────────────────────────────────────────────────────────────
SOURCE_LANGUAGE = os.getenv("SOURCE_LANGUAGE", "English")
TARGET_LANGUAGE = os.getenv("TARGET_LANGUAGE", "Chinese")

# ── Fields ─────────────────────────────────────────────────────────────────────
KEYS_TO_EXCLUDE = os.getenv("KEYS_TO_EXCLUDE", "")

# ── Paths ──────────────────────────────────────────────────────────────────────
DATA_DIR   = os.getenv("DATA_DIR", "data")
RESULT_DIR = os.getenv("RESULT_DIR", "result")

# ── Logging ────────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
