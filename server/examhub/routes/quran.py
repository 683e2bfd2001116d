from fastapi import APIRouter, Depends

from examhub.dependencies import get_quran_api
from examhub.schemas import VerseRequest
from examhub.services.quran_api import QuranApiClient

router = APIRouter(tags=["Quran"])


@router.post("/verse")
async def get_verse(request: VerseRequest, quran_api: QuranApiClient = Depends(get_quran_api)):
    """Look up one verse by surah and verse number."""
    return await quran_api.fetch_verse(request.surah, request.verse)
