"""
Agent: send the user's text and attachments to the OpenAI agent and return its answer.

Responsibility: Validate configuration, ingest attachments, assemble one Responses API
call (primary stored-prompt agent, or the fallback model), and normalize the result
to text via extract_text. Called by the API; no HTTP here.
"""

import logging
from pathlib import PurePosixPath
from typing import Any

import openai

from agent_relay.core.config import (
    AGENT_ID,
    AGENT_VERSION,
    FALLBACK_ENABLED,
    FALLBACK_MODEL,
    FALLBACK_SYSTEM_PROMPT,
    INDEX_UPLOADS,
    LLM_API_TIMEOUT,
    METADATA_MAX_KEYS,
    METADATA_MAX_VALUE_LEN,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    VECTOR_STORE_ID,
    WEB_SEARCH_DOMAINS,
)
from agent_relay.core.errors import ConfigurationError, UpstreamError
from agent_relay.schemas.run import FileRef
from agent_relay.services.extractor import extract_text
from agent_relay.services.file_service import FileIngestor, IngestedFile

logger = logging.getLogger(__name__)

PRIMARY_INCLUDE = [
    "code_interpreter_call.outputs",
    "web_search_call.action.sources",
]

# input_file parts are only accepted for PDFs; other uploads reach the agent via code_interpreter
INPUT_FILE_EXTENSIONS = frozenset({".pdf"})


def build_user_message(text: str, files: list[IngestedFile]) -> dict[str, Any]:
    """User message: input_text plus one input_file per non-indexed PDF attachment."""
    content: list[dict[str, Any]] = [{"type": "input_text", "text": text or ""}]
    for f in files:
        if f.indexed:
            continue
        if PurePosixPath(f.filename).suffix.lower() in INPUT_FILE_EXTENSIONS:
            content.append({"type": "input_file", "file_id": f.file_id})
    return {"role": "user", "content": content}


def build_metadata(chat_id: str | int | None, meta: dict[str, Any] | None) -> dict[str, str]:
    """OpenAI metadata: string values only, bounded key count and value length."""
    out: dict[str, str] = {}
    if chat_id is not None and str(chat_id).strip():
        out["conversation_id"] = str(chat_id)[:METADATA_MAX_VALUE_LEN]
    for key, value in (meta or {}).items():
        if len(out) >= METADATA_MAX_KEYS:
            break
        if value is None or key in out:
            continue
        out[str(key)[:64]] = str(value)[:METADATA_MAX_VALUE_LEN]
    return out


def _error_message(e: Exception) -> str:
    return getattr(e, "message", None) or str(e) or "Agent error"


class AgentService:
    """One upstream call per request. The OpenAI client is created on first use."""

    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        base_url: str = OPENAI_BASE_URL,
        agent_id: str = AGENT_ID,
        agent_version: str = AGENT_VERSION,
        vector_store_id: str = VECTOR_STORE_ID,
        index_uploads: bool = INDEX_UPLOADS,
        web_search_domains: list[str] | None = None,
        fallback_enabled: bool = FALLBACK_ENABLED,
        fallback_model: str = FALLBACK_MODEL,
        fallback_system_prompt: str = FALLBACK_SYSTEM_PROMPT,
        timeout: float = LLM_API_TIMEOUT,
        client: openai.AsyncOpenAI | None = None,
        ingestor: FileIngestor | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.agent_id = agent_id
        self.agent_version = agent_version
        self.vector_store_id = vector_store_id
        self.index_uploads = index_uploads
        self.web_search_domains = list(WEB_SEARCH_DOMAINS if web_search_domains is None else web_search_domains)
        self.fallback_enabled = fallback_enabled
        self.fallback_model = fallback_model
        self.fallback_system_prompt = fallback_system_prompt
        self.timeout = timeout
        self._client = client
        self._ingestor = ingestor

    def _ensure_client(self) -> openai.AsyncOpenAI:
        if not self.agent_id and not self.fallback_enabled:
            raise ConfigurationError("AGENT_ID (or OPENAI_AGENT_ID) is not set")
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        self._client = openai.AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url or None,
            timeout=self.timeout,
        )
        logger.info("[agent] client ready agent_id=%s fallback=%s", self.agent_id or "-", self.fallback_enabled)
        return self._client

    def _get_ingestor(self, client: openai.AsyncOpenAI) -> FileIngestor:
        if self._ingestor is None:
            self._ingestor = FileIngestor(
                client,
                vector_store_id=self.vector_store_id,
                index_uploads=self.index_uploads,
            )
        return self._ingestor

    def primary_tools(self, file_ids: list[str]) -> list[dict[str, Any]]:
        tools: list[dict[str, Any]] = []
        if self.vector_store_id:
            tools.append({"type": "file_search", "vector_store_ids": [self.vector_store_id]})
        web_search: dict[str, Any] = {
            "type": "web_search",
            "search_context_size": "medium",
            "user_location": {"type": "approximate"},
        }
        if self.web_search_domains:
            web_search["filters"] = {"allowed_domains": list(self.web_search_domains)}
        tools.append(web_search)
        tools.append({"type": "code_interpreter", "container": {"type": "auto", "file_ids": list(file_ids)}})
        return tools

    @staticmethod
    def fallback_tools(file_ids: list[str]) -> list[dict[str, Any]]:
        return [
            {"type": "web_search_preview", "search_context_size": "medium", "user_location": {"type": "approximate"}},
            {"type": "code_interpreter", "container": {"type": "auto", "file_ids": list(file_ids)}},
        ]

    async def _call_primary(
        self,
        client: openai.AsyncOpenAI,
        message: dict[str, Any],
        file_ids: list[str],
        metadata: dict[str, str],
    ) -> Any:
        prompt: dict[str, Any] = {"id": self.agent_id}
        if self.agent_version:
            prompt["version"] = self.agent_version
        logger.info("[agent:primary] IN  prompt=%s files=%d", self.agent_id, len(file_ids))
        kwargs: dict[str, Any] = {
            "prompt": prompt,
            "input": [message],
            "tools": self.primary_tools(file_ids),
            "store": True,
            "include": PRIMARY_INCLUDE,
        }
        if metadata:
            kwargs["metadata"] = metadata
        return await client.responses.create(**kwargs)

    async def _call_fallback(
        self,
        client: openai.AsyncOpenAI,
        message: dict[str, Any],
        file_ids: list[str],
        metadata: dict[str, str],
    ) -> Any:
        system = {"role": "system", "content": self.fallback_system_prompt}
        logger.info("[agent:fallback] IN  model=%s files=%d", self.fallback_model, len(file_ids))
        kwargs: dict[str, Any] = {
            "model": self.fallback_model,
            "input": [system, message],
            "tools": self.fallback_tools(file_ids),
        }
        if metadata:
            kwargs["metadata"] = metadata
        return await client.responses.create(**kwargs)

    async def run(
        self,
        text: str = "",
        files: list[FileRef] | None = None,
        chat_id: str | int | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Any:
        """
        One agent call for one request. Returns the raw upstream result.

        Raises:
            ConfigurationError: missing API key or agent id.
            FileIngestionError: an attachment could not be fetched or uploaded.
            UpstreamError: the upstream call (and the fallback, if enabled) failed.
        """
        client = self._ensure_client()
        logger.info("[agent:run] IN  text_len=%d files=%d chat_id=%s", len(text or ""), len(files or []), chat_id)
        ingested = await self._get_ingestor(client).ingest(list(files or []))
        message = build_user_message(text, ingested)
        metadata = build_metadata(chat_id, meta)
        file_ids = [f.file_id for f in ingested]

        if self.agent_id:
            try:
                return await self._call_primary(client, message, file_ids, metadata)
            except openai.OpenAIError as e:
                if not self.fallback_enabled:
                    logger.warning("[agent:primary] failed: %s", e)
                    raise UpstreamError(_error_message(e)) from e
                logger.warning("[agent:primary] failed, using fallback agent: %s", e)

        try:
            return await self._call_fallback(client, message, file_ids, metadata)
        except openai.OpenAIError as e:
            logger.warning("[agent:fallback] failed: %s", e)
            raise UpstreamError(_error_message(e)) from e

    async def answer(
        self,
        text: str = "",
        files: list[FileRef] | None = None,
        chat_id: str | int | None = None,
        meta: dict[str, Any] | None = None,
    ) -> str:
        """run() followed by extract_text()."""
        result = await self.run(text, files=files, chat_id=chat_id, meta=meta)
        answer = extract_text(result)
        logger.info("[agent:answer] OUT answer_len=%d", len(answer))
        return answer
