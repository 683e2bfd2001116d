"""
Exam content API: create, fetch, edit and delete full exam trees.

Handlers are plain `def` so the blocking database work runs in the threadpool.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from examhub.database import get_db
from examhub.dependencies import get_exam_cache
from examhub.errors import AppError
from examhub.schemas import EditExamRequest, ExamCreateRequest, ExamCreatedResponse, ExamResponse
from examhub.services import exam_repository
from examhub.services.exam_cache import ExamCache

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Exam"])


def _invalidate(cache: Optional[ExamCache], exam_id: int) -> None:
    """Drop the cached tree after a committed change; a cache outage does not fail the request."""
    if cache is None:
        return
    try:
        cache.invalidate(exam_id)
    except AppError as exc:
        logger.error("Exam %s changed but its cache entry could not be dropped: %s", exam_id, exc)


@router.post("/create", status_code=status.HTTP_201_CREATED, response_model=ExamCreatedResponse)
def create_exam(request: ExamCreateRequest, db: Session = Depends(get_db)):
    """Store a full exam tree with caller-supplied ids."""
    exam_id = exam_repository.insert_exam(db, request)
    return ExamCreatedResponse(exam_id=exam_id)


@router.put("/edit")
def edit_exam(
    request: EditExamRequest,
    db: Session = Depends(get_db),
    cache: Optional[ExamCache] = Depends(get_exam_cache),
):
    """Apply updates and deletions to one exam. Empty lists are no-ops."""
    exam_repository.edit_exam(db, request)
    if not request.is_noop():
        _invalidate(cache, request.exam_id)
    return Response(status_code=status.HTTP_200_OK)


@router.delete("/delete/{exam_id}")
def delete_exam(
    exam_id: int,
    db: Session = Depends(get_db),
    cache: Optional[ExamCache] = Depends(get_exam_cache),
):
    """Delete an exam and everything under it. Deleting a missing exam succeeds."""
    exam_repository.delete_exam(db, exam_id)
    _invalidate(cache, exam_id)
    return {"message": "Exam deleted successfully", "exam_id": exam_id}


@router.get("/{exam_id}", response_model=ExamResponse)
def get_exam(
    exam_id: int,
    db: Session = Depends(get_db),
    cache: Optional[ExamCache] = Depends(get_exam_cache),
):
    """Fetch the nested exam tree, reading through the cache when one is configured."""
    if cache is not None:
        cached = cache.get_exam(exam_id)
        if cached is not None:
            logger.debug("Exam %s served from cache", exam_id)
            return cached
        version = cache.current_version(exam_id)

    exam = exam_repository.read_exam(db, exam_id)

    if cache is not None:
        cache.put_exam(exam, version)
    return exam
