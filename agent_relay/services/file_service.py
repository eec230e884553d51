"""
Attachment ingestion: download files by URL, upload them to OpenAI, optionally index them.

Responsibility: Turn the caller's file references into OpenAI file ids the agent can use.
Called by AgentService; no HTTP routes here. No retries: any failure is a FileIngestionError.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse

import httpx
import openai

from agent_relay.core.config import FILE_DOWNLOAD_TIMEOUT, MAX_FILE_BYTES
from agent_relay.core.errors import FileIngestionError
from agent_relay.schemas.run import FileRef

logger = logging.getLogger(__name__)

UPLOAD_PURPOSE = "user_data"


@dataclass
class IngestedFile:
    """An attachment that now lives on the OpenAI side."""

    file_id: str
    filename: str
    indexed: bool = False


def _sanitize_filename(filename: str) -> str:
    """Safe basename for the upload; never empty."""
    if not filename or not filename.strip():
        return "file"
    base = PurePosixPath(filename.replace("\\", "/")).name
    safe = re.sub(r"[^\w.\-]", "_", base.replace("..", ""))
    return safe.strip("._") or "file"


def filename_for(ref: FileRef) -> str:
    """ref.name, else last segment of the URL path, else 'file'."""
    if ref.name and ref.name.strip():
        return _sanitize_filename(ref.name)
    path = unquote(urlparse(ref.url).path or "")
    return _sanitize_filename(PurePosixPath(path).name)


class FileIngestor:
    """Download → upload → (optional) vector store indexing, one reference at a time."""

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        vector_store_id: str = "",
        index_uploads: bool = False,
        max_bytes: int = MAX_FILE_BYTES,
        timeout: float = FILE_DOWNLOAD_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client = client
        self.vector_store_id = vector_store_id
        self.index_uploads = bool(index_uploads and vector_store_id)
        self.max_bytes = max_bytes
        self.timeout = timeout
        self._transport = transport

    async def download(self, ref: FileRef) -> tuple[str, bytes]:
        """Fetch the file body. Raises FileIngestionError on HTTP error, transport error, or size overflow."""
        filename = filename_for(ref)
        logger.info("[files:download] IN  url=%s filename=%s", ref.url[:200], filename)
        chunks: list[bytes] = []
        size = 0
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as http:
                async with http.stream("GET", ref.url) as response:
                    if not response.is_success:
                        raise FileIngestionError(
                            f"Failed to download {filename}: HTTP {response.status_code}", url=ref.url
                        )
                    async for chunk in response.aiter_bytes():
                        size += len(chunk)
                        if size > self.max_bytes:
                            raise FileIngestionError(
                                f"File {filename} exceeds {self.max_bytes} bytes", url=ref.url
                            )
                        chunks.append(chunk)
        except httpx.HTTPError as e:
            raise FileIngestionError(f"Failed to download {filename}: {e}", url=ref.url) from e
        logger.info("[files:download] OUT filename=%s bytes=%d", filename, size)
        return filename, b"".join(chunks)

    async def upload(self, filename: str, content: bytes) -> str:
        """Upload bytes to OpenAI Files; returns the file id."""
        try:
            uploaded = await self.client.files.create(file=(filename, content), purpose=UPLOAD_PURPOSE)
        except openai.OpenAIError as e:
            raise FileIngestionError(f"Failed to upload {filename}: {e}") from e
        logger.info("[files:upload] OUT filename=%s file_id=%s", filename, uploaded.id)
        return uploaded.id

    async def index(self, file_id: str) -> None:
        """Attach an uploaded file to the vector store and wait until it is processed."""
        try:
            vs_file = await self.client.vector_stores.files.create_and_poll(
                vector_store_id=self.vector_store_id, file_id=file_id
            )
        except openai.OpenAIError as e:
            raise FileIngestionError(f"Failed to index {file_id}: {e}") from e
        if getattr(vs_file, "status", None) != "completed":
            last_error = getattr(vs_file, "last_error", None)
            detail = getattr(last_error, "message", None) or getattr(vs_file, "status", "unknown")
            raise FileIngestionError(f"Indexing {file_id} did not complete: {detail}")
        logger.info("[files:index] OUT file_id=%s vector_store_id=%s", file_id, self.vector_store_id)

    async def delete(self, file_ids: list[str]) -> None:
        """Remove uploaded files; failures are logged, not raised."""
        for file_id in file_ids:
            try:
                await self.client.files.delete(file_id)
                logger.info("[files:delete] file_id=%s", file_id)
            except openai.OpenAIError as e:
                logger.warning("[files:delete] failed file_id=%s: %s", file_id, e)

    async def ingest(self, refs: list[FileRef]) -> list[IngestedFile]:
        """
        Process references in order; the first failure aborts the request and
        deletes the files this call already uploaded.
        """
        out: list[IngestedFile] = []
        uploaded: list[str] = []
        try:
            for ref in refs:
                filename, content = await self.download(ref)
                file_id = await self.upload(filename, content)
                uploaded.append(file_id)
                if self.index_uploads:
                    await self.index(file_id)
                out.append(IngestedFile(file_id=file_id, filename=filename, indexed=self.index_uploads))
        except FileIngestionError:
            if uploaded:
                logger.warning("[files:ingest] aborted; deleting %d uploaded file(s)", len(uploaded))
                await self.delete(uploaded)
            raise
        return out
