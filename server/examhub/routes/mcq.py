"""
MCQ option generation API.
"""
from fastapi import APIRouter, Depends

from examhub.dependencies import get_context_generator, get_quranic_generator, get_similar_generator
from examhub.generators import DistractorType
from examhub.generators.base import BaseOptionsGenerator
from examhub.schemas import McqOptionsRequest, McqOptionsResponse, QuranicDistractorRequest

router = APIRouter(tags=["MCQ"])


@router.post("/options/context", response_model=McqOptionsResponse)
async def context_options(
    request: McqOptionsRequest,
    generator: BaseOptionsGenerator = Depends(get_context_generator),
):
    """Four options for an Urdu fill-in-the-blank, distractors drawn from context."""
    return await generator.generate(request.question, request.correct_answer, language=request.language)


@router.post("/options/similar", response_model=McqOptionsResponse)
async def similar_options(
    request: McqOptionsRequest,
    generator: BaseOptionsGenerator = Depends(get_similar_generator),
):
    """Four options with distractors from the same category as the answer."""
    return await generator.generate(request.question, request.correct_answer, language=request.language)


@router.post("/options/quranic/{distractor_type}", response_model=McqOptionsResponse)
async def quranic_options(
    distractor_type: DistractorType,
    request: QuranicDistractorRequest,
    generator: BaseOptionsGenerator = Depends(get_quranic_generator),
):
    """Four Arabic options using the given Quranic-verse distractor type."""
    return await generator.generate(
        request.question, request.correct_answer, distractor_type=distractor_type
    )
