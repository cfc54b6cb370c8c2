"""
Preview Store

Holds uploaded image bytes behind short-lived URLs so the page can show a
preview of each slot. A reference stays valid until it is released.
"""

import secrets
import threading
from typing import Dict, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


class PreviewStore:
    """In-memory registry of displayable preview references"""

    def __init__(self, url_prefix: str = "/previews/"):
        self.url_prefix = url_prefix
        self._items: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def create(self, data: bytes, mime_type: str) -> str:
        """
        Register image bytes and return a URL that serves them.

        Args:
            data: Raw image bytes
            mime_type: Media type the bytes are served with

        Returns:
            str: Preview URL (e.g. "/previews/3b1f...")
        """
        token = secrets.token_urlsafe(16)
        with self._lock:
            self._items[token] = (data, mime_type)
        return f"{self.url_prefix}{token}"

    def get(self, token: str) -> Optional[Tuple[bytes, str]]:
        with self._lock:
            return self._items.get(token)

    def release(self, preview_url: Optional[str]) -> bool:
        """
        Release a preview reference. Unknown or empty URLs are ignored.

        Returns:
            True if a reference was released
        """
        if not preview_url or not preview_url.startswith(self.url_prefix):
            return False

        token = preview_url[len(self.url_prefix):]
        with self._lock:
            released = self._items.pop(token, None) is not None

        if released:
            logger.debug("Preview released", token=token)
        return released

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
