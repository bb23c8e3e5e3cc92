# docmemory/memory/loader.py

"""
Remote document loading.

fetch → scratch file → PDF text

The scratch file is unique per call and always removed, whether the
download or the extraction failed.
"""

import logging
import os
import tempfile
from typing import Optional
from urllib.parse import unquote, urlparse

import requests
from pypdf import PdfReader

from docmemory.config import HTTP_TIMEOUT_SECONDS, MAX_FILE_SIZE_MB

logger = logging.getLogger(__name__)

_DOWNLOAD_CHUNK_BYTES = 64 * 1024


# ============================================================
# URL HELPERS
# ============================================================

def decode_url(url: str) -> str:
    return unquote(url or "").strip()


def file_name_from_url(url: str) -> str:
    """Last segment of the URL path: ``.../docs/policy.pdf`` → ``policy.pdf``."""
    return os.path.basename(urlparse(url).path)


# ============================================================
# DOWNLOAD
# ============================================================

def download_to(url: str, file_path: str, max_bytes: int = MAX_FILE_SIZE_MB * 1024 * 1024):

    with requests.get(url, stream=True, timeout=HTTP_TIMEOUT_SECONDS) as resp:

        resp.raise_for_status()

        written = 0

        with open(file_path, "wb") as f:

            for block in resp.iter_content(chunk_size=_DOWNLOAD_CHUNK_BYTES):

                written += len(block)

                if written > max_bytes:
                    raise ValueError(
                        f"Document too large: more than {MAX_FILE_SIZE_MB}MB"
                    )

                f.write(block)

    return written


# ============================================================
# PDF LOADER
# ============================================================

def load_pdf_text(file_path: str) -> str:
    """Plain text of every page, in page order."""

    reader = PdfReader(file_path)

    parts = []

    for page in reader.pages:

        text = page.extract_text()

        if text:
            parts.append(text)

    return "\n".join(parts)


def fetch_pdf_text(url: str, temp_dir: Optional[str] = None) -> str:

    suffix = "-" + (file_name_from_url(url) or "document.pdf")

    fd, file_path = tempfile.mkstemp(suffix=suffix, dir=temp_dir)
    os.close(fd)

    try:

        size = download_to(url, file_path)

        logger.info(
            "Document downloaded",
            extra={"url": url, "bytes": size},
        )

        return load_pdf_text(file_path)

    finally:

        try:
            os.remove(file_path)
        except OSError as e:
            logger.debug(
                "Scratch file cleanup failed",
                extra={"path": file_path, "error": str(e)},
            )
