"""Bible proxy API.

Learn: Open to everyone, signed in or not. GET reads the action and ids
from the query string; POST reads the same fields from a JSON body. Both
return upstream's `data` member unchanged (getBibles may be reordered when
preferred=true).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from littlegabriel.api.deps import get_bible_client
from littlegabriel.schemas.common import ApiModel
from littlegabriel.services.bible_service import BibleClient, BibleRequestError

router = APIRouter(prefix="/bible")


class BibleQuery(ApiModel):
    action: Optional[str] = None
    bible_id: Optional[str] = None
    book_id: Optional[str] = None
    chapter_id: Optional[str] = None
    query: Optional[str] = None
    preferred: bool = False


async def _dispatch(params: BibleQuery, client: BibleClient):
    try:
        return await client.dispatch(
            params.action,
            bible_id=params.bible_id,
            book_id=params.book_id,
            chapter_id=params.chapter_id,
            query=params.query,
            preferred=params.preferred,
        )
    except BibleRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("")
async def bible_get(
    action: Optional[str] = None,
    bibleId: Optional[str] = None,
    bookId: Optional[str] = None,
    chapterId: Optional[str] = None,
    query: Optional[str] = None,
    preferred: bool = False,
    client: BibleClient = Depends(get_bible_client),
):
    params = BibleQuery(
        action=action,
        bible_id=bibleId,
        book_id=bookId,
        chapter_id=chapterId,
        query=query,
        preferred=preferred,
    )
    return await _dispatch(params, client)


@router.post("")
async def bible_post(body: BibleQuery, client: BibleClient = Depends(get_bible_client)):
    return await _dispatch(body, client)
