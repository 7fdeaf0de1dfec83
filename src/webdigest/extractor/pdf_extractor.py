"""
PDF text extraction to a markdown side file.
"""

from __future__ import annotations

import asyncio
import io
from pathlib import Path, PurePosixPath
from typing import List
from urllib.parse import unquote, urlparse

import structlog
from pypdf import PasswordType, PdfReader

from webdigest.exceptions import PdfExtractionError
from webdigest.models import PdfExtractionOutcome
from webdigest.utils.atomic import atomic_write_text
from webdigest.utils.slugify import slugify_url

logger = structlog.get_logger(__name__)


class PdfExtractor:
    """
    Extracts the text of a PDF with pypdf and writes it as markdown.

    The full text lives only in the side file; callers get a summary
    (path, page count, character count).
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    async def extract(self, data: bytes, url: str) -> PdfExtractionOutcome:
        """Run the extraction off the event loop.

        Raises:
            PdfExtractionError: unreadable, encrypted or unwritable document
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.extract_sync, data, url)

    def extract_sync(self, data: bytes, url: str) -> PdfExtractionOutcome:
        if not data:
            raise PdfExtractionError("Empty PDF body")

        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
                raise PdfExtractionError("PDF is encrypted")
            pages = [page.extract_text() or "" for page in reader.pages]
            title = self._title(reader, url)
        except PdfExtractionError:
            raise
        except Exception as e:
            raise PdfExtractionError(str(e) or type(e).__name__) from e

        text = self._join_pages(pages)
        output_path = self.output_dir / f"{slugify_url(url)}.md"
        try:
            atomic_write_text(output_path, f"# {title}\n\nSource: {url}\n\n{text}\n")
        except OSError as e:
            raise PdfExtractionError(str(e)) from e

        logger.info("PDF extracted", url=url, path=str(output_path), pages=len(pages), chars=len(text))
        return PdfExtractionOutcome(title=title, output_path=str(output_path), pages=len(pages), chars=len(text))

    def _join_pages(self, pages: List[str]) -> str:
        return "\n\n".join(page.strip() for page in pages if page.strip())

    def _title(self, reader: PdfReader, url: str) -> str:
        metadata = reader.metadata
        if metadata is not None and metadata.title and str(metadata.title).strip():
            return str(metadata.title).strip()
        parsed = urlparse(url)
        stem = PurePosixPath(unquote(parsed.path)).stem
        return stem or parsed.hostname or url
