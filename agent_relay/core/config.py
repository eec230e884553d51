"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
Nothing here is validated at import time; AgentService checks what it needs on first use.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


# Server
PORT: int = int(os.getenv("PORT", "10000").strip() or "10000")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# OpenAI credentials. OPENAI_BASE_URL is optional (own proxy).
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "").strip()

# Primary agent: a stored prompt on the OpenAI platform (pmpt_...).
AGENT_ID: str = (os.getenv("AGENT_ID") or os.getenv("OPENAI_AGENT_ID") or "").strip()
AGENT_VERSION: str = os.getenv("AGENT_VERSION", "").strip()

# Vector store used by file_search; uploads are indexed into it when INDEX_UPLOADS is on.
VECTOR_STORE_ID: str = os.getenv("VECTOR_STORE_ID", "").strip()
INDEX_UPLOADS: bool = _env_bool("INDEX_UPLOADS", False)

# Comma separated allow-list for the primary agent's web_search tool (empty = unrestricted)
WEB_SEARCH_DOMAINS: list[str] = [
    d.strip() for d in os.getenv("WEB_SEARCH_DOMAINS", "").split(",") if d.strip()
]

# Fallback agent: plain model + system prompt, used when the primary agent is missing or fails.
FALLBACK_ENABLED: bool = _env_bool("FALLBACK_ENABLED", True)
FALLBACK_MODEL: str = os.getenv("FALLBACK_MODEL", "gpt-5").strip() or "gpt-5"
FALLBACK_SYSTEM_PROMPT: str = (
    os.getenv("FALLBACK_SYSTEM_PROMPT", "").strip()
    or "You are a helpful assistant. Answer the user's request concisely, "
    "using the attached files and web search when they are relevant."
)

# API timeouts (seconds)
LLM_API_TIMEOUT: float = _env_float("LLM_API_TIMEOUT", 180.0)
FILE_DOWNLOAD_TIMEOUT: float = _env_float("FILE_DOWNLOAD_TIMEOUT", 60.0)

# Attachments larger than this are rejected before upload
MAX_FILE_BYTES: int = int(_env_float("MAX_FILE_BYTES", 20 * 1024 * 1024))

# Response extraction: upper bound for the raw JSON dump returned when no text is found
MAX_DUMP_CHARS: int = 3500

# Returned by /run when the agent produced no extractable text
EMPTY_ANSWER_TEXT: str = os.getenv("EMPTY_ANSWER_TEXT", "Done.").strip() or "Done."

# OpenAI metadata limits (keys per request, chars per value)
METADATA_MAX_KEYS: int = 16
METADATA_MAX_VALUE_LEN: int = 512
