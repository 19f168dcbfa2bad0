"""Bible service — thin proxy over api.bible (scripture.api.bible).

Learn: The browser never sees the api.bible key. It calls /api/bible with
an action name, and this client adds the `api-key` header, calls upstream,
and returns the response's `data` member.

Actions:
- getBibles          → /bibles
- getBooks           → /bibles/{bibleId}/books
- getChapters        → /bibles/{bibleId}/books/{bookId}/chapters
- getChapterContent  → /bibles/{bibleId}/chapters/{chapterId}?content-type=text...
- search             → /bibles/{bibleId}/search?query=...&limit=25
"""

from typing import Any, Optional

import httpx
import structlog

from littlegabriel.config import settings
from littlegabriel.errors import ConfigurationError, UpstreamError

logger = structlog.get_logger()

ACTIONS = ("getBibles", "getBooks", "getChapters", "getChapterContent", "search")

# English versions listed first when the client asks for preferred Bibles
PREFERRED_ENGLISH_VERSIONS = (
    "KJV", "NKJV", "ESV", "NIV", "CSB", "NLT",
    "NASB", "NRSV", "ASV", "GNT", "NET",
)

CHAPTER_CONTENT_PARAMS = {
    "content-type": "text",
    "include-notes": "false",
    "include-titles": "true",
    "include-chapter-numbers": "false",
    "include-verse-numbers": "true",
    "include-verse-spans": "false",
}

SEARCH_LIMIT = 25


class BibleApiError(UpstreamError):
    """api.bible answered with an error or could not be reached."""

    def __init__(self, detail: str):
        super().__init__("Failed to fetch Bible data. Please try again later.", detail)


class BibleRequestError(ValueError):
    """The caller left out a parameter the action needs."""


def filter_preferred_bibles(bibles: list[dict]) -> list[dict]:
    """Preferred English versions first, then every non-English Bible.

    English Bibles that aren't on the preferred list are dropped.
    """
    def language(b: dict) -> str:
        return ((b.get("language") or {}).get("name") or "").lower()

    def preferred(b: dict) -> bool:
        abbr = b.get("abbreviation") or ""
        name = b.get("name") or ""
        return any(v in abbr or v in name for v in PREFERRED_ENGLISH_VERSIONS)

    english = [b for b in bibles if language(b) == "english" and preferred(b)]
    others = [b for b in bibles if language(b) != "english"]
    return english + others


class BibleClient:
    """Async client for api.bible.

    Learn: One httpx.AsyncClient is reused for the life of the app (built
    in create_app, closed in the lifespan). Tests pass a MockTransport.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.bible_api_key if api_key is None else api_key
        self._http = httpx.AsyncClient(
            base_url=(base_url or settings.bible_api_url).rstrip("/"),
            timeout=30.0,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        if not self.api_key:
            raise ConfigurationError("Bible API key is not configured")
        try:
            resp = await self._http.get(
                path, params=params, headers={"api-key": self.api_key}
            )
        except httpx.HTTPError as e:
            logger.warning("bible.request_failed", path=path, error=str(e))
            raise BibleApiError(str(e))
        if resp.status_code >= 400:
            logger.warning("bible.upstream_error", path=path, status=resp.status_code)
            raise BibleApiError(f"Bible API error: {resp.status_code} {resp.reason_phrase}")
        try:
            body = resp.json()
        except ValueError:
            logger.warning("bible.invalid_body", path=path, status=resp.status_code)
            raise BibleApiError("Bible API returned a non-JSON response")
        if not isinstance(body, dict):
            raise BibleApiError("Bible API returned an unexpected response")
        return body.get("data")

    # ─── Actions ────────────────────────────────────────

    async def get_bibles(self, preferred: bool = False) -> list[dict]:
        bibles = await self._get("/bibles") or []
        return filter_preferred_bibles(bibles) if preferred else bibles

    async def get_books(self, bible_id: str) -> list[dict]:
        return await self._get(f"/bibles/{bible_id}/books")

    async def get_chapters(self, bible_id: str, book_id: str) -> list[dict]:
        return await self._get(f"/bibles/{bible_id}/books/{book_id}/chapters")

    async def get_chapter_content(self, bible_id: str, chapter_id: str) -> dict:
        return await self._get(
            f"/bibles/{bible_id}/chapters/{chapter_id}", params=CHAPTER_CONTENT_PARAMS
        )

    async def search(self, bible_id: str, query: str) -> dict:
        return await self._get(
            f"/bibles/{bible_id}/search",
            params={"query": query, "limit": SEARCH_LIMIT},
        )

    async def dispatch(
        self,
        action: Optional[str],
        bible_id: Optional[str] = None,
        book_id: Optional[str] = None,
        chapter_id: Optional[str] = None,
        query: Optional[str] = None,
        preferred: bool = False,
    ) -> Any:
        """Run one proxy action. Raises BibleRequestError for bad input."""
        if action == "getBibles":
            return await self.get_bibles(preferred=preferred)
        if action == "getBooks":
            if not bible_id:
                raise BibleRequestError("Bible ID is required")
            return await self.get_books(bible_id)
        if action == "getChapters":
            if not bible_id or not book_id:
                raise BibleRequestError("Bible ID and Book ID are required")
            return await self.get_chapters(bible_id, book_id)
        if action == "getChapterContent":
            if not bible_id or not chapter_id:
                raise BibleRequestError("Bible ID and Chapter ID are required")
            return await self.get_chapter_content(bible_id, chapter_id)
        if action == "search":
            if not bible_id or not query:
                raise BibleRequestError("Bible ID and query are required for search")
            return await self.search(bible_id, query)
        raise BibleRequestError("Invalid action")
