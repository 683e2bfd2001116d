"""
Exam Repository.

Transactional access to the relational exam store. Every public function runs
in exactly one transaction on the session it is given and wraps storage
failures in AppError with the step that failed.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import case, delete, insert, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from examhub.errors import AppError
from examhub.models import Exam, ExamDescription, Option, Question, Section
from examhub.schemas import (
    DeleteIdsRequest,
    EditExamRequest,
    ExamCreateRequest,
    ExamDescriptionResponse,
    ExamResponse,
)
from examhub.services.exam_mapping import (
    DeletionPlan,
    HierarchyRow,
    expand_deletions,
    flatten_exam,
    regroup_rows,
)

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO NOTHING
_INSERT_OR_IGNORE = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _describe(exc: Exception) -> str:
    return str(getattr(exc, "orig", None) or exc)


def _insert_or_ignore(session: Session, model, rows: List[Dict[str, Any]]) -> None:
    """Insert all rows in one statement, skipping primary-key conflicts."""
    if not rows:
        return
    dialect = session.get_bind().dialect.name
    dialect_insert = _INSERT_OR_IGNORE.get(dialect)
    if dialect_insert is None:
        raise AppError.internal(f"insert-or-ignore is not supported on {dialect}")
    stmt = dialect_insert(model.__table__).values(rows).on_conflict_do_nothing(index_elements=["id"])
    session.execute(stmt)


def _exam_section_ids(exam_id: int):
    return (
        select(Section.id)
        .join(ExamDescription, Section.exam_description_id == ExamDescription.id)
        .where(ExamDescription.exam_id == exam_id)
    )


def _exam_question_ids(exam_id: int):
    return select(Question.id).where(Question.section_id.in_(_exam_section_ids(exam_id)))


def _exam_exists(session: Session, exam_id: int) -> bool:
    return session.execute(select(Exam.id).where(Exam.id == exam_id)).first() is not None


# =============================================================================
# Create
# =============================================================================

def insert_exam(session: Session, request: ExamCreateRequest) -> int:
    """
    Persist a full exam tree atomically and return the exam id.

    Order is exam, description, sections, questions, options; each of the last
    three is a single bulk insert. Nothing is visible unless every step
    succeeds.
    """
    try:
        rows = flatten_exam(request)
    except ValueError as exc:
        raise AppError.storage("failed to insert exam", str(exc)) from exc

    step = "exam"
    try:
        with session.begin():
            session.execute(insert(Exam).values(**rows.exam))
            step = "exam description"
            session.execute(insert(ExamDescription).values(**rows.description))
            step = "sections"
            _insert_or_ignore(session, Section, rows.sections)
            step = "questions"
            _insert_or_ignore(session, Question, rows.questions)
            step = "options"
            _insert_or_ignore(session, Option, rows.options)
    except SQLAlchemyError as exc:
        raise AppError.storage("failed to insert exam", f"{step}: {_describe(exc)}") from exc

    logger.info(
        "Exam %s created (%d sections, %d questions, %d options)",
        request.exam_id, len(rows.sections), len(rows.questions), len(rows.options),
    )
    return request.exam_id


# =============================================================================
# Read
# =============================================================================

def _exam_tree_query(exam_id: int):
    return (
        select(
            Section.id.label("section_id"),
            Section.title.label("section_title"),
            Section.exam_description_id.label("section_exam_description_id"),
            Question.id.label("question_id"),
            Question.text.label("question_text"),
            Question.description.label("question_description"),
            Question.marks.label("question_marks"),
            Option.id.label("option_id"),
            Option.text.label("option_text"),
            Option.is_correct.label("option_is_correct"),
        )
        .select_from(Exam)
        .join(ExamDescription, ExamDescription.exam_id == Exam.id)
        .outerjoin(Section, Section.exam_description_id == ExamDescription.id)
        .outerjoin(Question, Question.section_id == Section.id)
        .outerjoin(Option, Option.question_id == Question.id)
        .where(Exam.id == exam_id)
        .order_by(Section.id, Question.id, Option.id)
    )


def read_exam(session: Session, exam_id: int) -> ExamResponse:
    """Load the full exam tree; NotFound if the exam or its description is missing."""
    step = "exam"
    try:
        with session.begin():
            if not _exam_exists(session, exam_id):
                raise AppError.not_found(f"Exam {exam_id} not found")

            step = "exam description"
            description = session.execute(
                select(ExamDescription).where(ExamDescription.exam_id == exam_id)
            ).scalar_one_or_none()
            if description is None:
                raise AppError.not_found(f"Description for exam {exam_id} not found")

            step = "sections and questions"
            rows = session.execute(_exam_tree_query(exam_id)).mappings().all()
    except SQLAlchemyError as exc:
        raise AppError.storage(f"failed to fetch {step}", _describe(exc)) from exc

    return ExamResponse(
        exam_id=exam_id,
        description=ExamDescriptionResponse.model_validate(description),
        sections=regroup_rows(rows),
    )


# =============================================================================
# Delete
# =============================================================================

def delete_exam(session: Session, exam_id: int) -> bool:
    """Delete an exam and, by cascade, all of its content. Returns False if nothing matched."""
    try:
        with session.begin():
            result = session.execute(delete(Exam).where(Exam.id == exam_id))
    except SQLAlchemyError as exc:
        raise AppError.storage("failed to delete exam", _describe(exc)) from exc

    deleted = result.rowcount > 0
    if deleted:
        logger.info("Exam %s deleted", exam_id)
    else:
        logger.info("Exam %s not present, nothing deleted", exam_id)
    return deleted


def _load_hierarchy(session: Session, request: DeleteIdsRequest, exam_id: Optional[int]) -> List[HierarchyRow]:
    stmt = (
        select(Section.id, Question.id, Option.id)
        .select_from(Section)
        .outerjoin(Question, Question.section_id == Section.id)
        .outerjoin(Option, Option.question_id == Question.id)
    )
    if exam_id is not None:
        stmt = stmt.where(Section.id.in_(_exam_section_ids(exam_id)))
    else:
        stmt = stmt.where(or_(Section.id.in_(request.section_ids), Question.id.in_(request.question_ids)))
    return [tuple(row) for row in session.execute(stmt).all()]


def _apply_deletions(session: Session, request: DeleteIdsRequest, exam_id: Optional[int]) -> DeletionPlan:
    """Expand the request against the current hierarchy and delete inside the open transaction."""
    try:
        hierarchy = _load_hierarchy(session, request, exam_id)
    except SQLAlchemyError as exc:
        raise AppError.storage("failed to load exam hierarchy", _describe(exc)) from exc

    plan = expand_deletions(request, hierarchy, restrict_to_hierarchy=exam_id is not None)

    targets = (
        ("sections", Section, plan.section_ids),
        ("questions", Question, plan.question_ids),
        ("options", Option, plan.option_ids),
    )
    for table, model, ids in targets:
        if not ids:
            continue
        try:
            session.execute(
                delete(model).where(model.id.in_(ids)).execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise AppError.storage(f"failed to delete {table}", _describe(exc)) from exc

    logger.info(
        "Deleted %d sections, %d questions, %d options",
        len(plan.section_ids), len(plan.question_ids), len(plan.option_ids),
    )
    return plan


def delete_entities(session: Session, request: DeleteIdsRequest, exam_id: Optional[int] = None) -> DeletionPlan:
    """
    Delete sections, questions and options by id, descendants included.

    An all-empty request returns immediately without opening a transaction.
    When `exam_id` is given, ids that do not belong to that exam are ignored.
    """
    if request.is_all_empty():
        return DeletionPlan()

    try:
        with session.begin():
            return _apply_deletions(session, request, exam_id)
    except SQLAlchemyError as exc:
        raise AppError.storage("failed to delete exam content", _describe(exc)) from exc


# =============================================================================
# Edit
# =============================================================================

def _update_by_id(session: Session, model, scope, edits: Sequence[Dict[str, Any]], columns: Sequence[str]) -> int:
    """One UPDATE for the whole batch, each column set through a CASE keyed by id."""
    ids = [edit["id"] for edit in edits]
    values = {
        column: case({edit["id"]: edit[column] for edit in edits}, value=model.id)
        for column in columns
    }
    stmt = (
        update(model)
        .where(model.id.in_(ids), scope)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != len(set(ids)):
        logger.warning(
            "%s update matched %d of %d ids", model.__tablename__, result.rowcount, len(set(ids))
        )
    return result.rowcount


def edit_exam(session: Session, request: EditExamRequest) -> None:
    """
    Apply field updates and deletions to one exam in a single transaction.

    Empty edit lists are skipped; deletions run after the updates.
    """
    if request.is_noop():
        logger.debug("Edit for exam %s has nothing to apply", request.exam_id)
        return

    exam_id = request.exam_id
    step = "exam"
    try:
        with session.begin():
            if not _exam_exists(session, exam_id):
                raise AppError.not_found(f"Exam {exam_id} not found")

            if request.sections:
                step = "sections"
                _update_by_id(
                    session, Section,
                    Section.id.in_(_exam_section_ids(exam_id)),
                    [s.model_dump() for s in request.sections],
                    ("title",),
                )

            if request.questions:
                step = "questions"
                _update_by_id(
                    session, Question,
                    Question.section_id.in_(_exam_section_ids(exam_id)),
                    [{**q.model_dump(), "description": q.description or ""} for q in request.questions],
                    ("text", "description", "marks"),
                )

            if request.options:
                step = "options"
                _update_by_id(
                    session, Option,
                    Option.question_id.in_(_exam_question_ids(exam_id)),
                    [{**o.model_dump(), "is_correct": bool(o.is_correct)} for o in request.options],
                    ("text", "is_correct"),
                )

            if not request.delete.is_all_empty():
                step = "deletions"
                _apply_deletions(session, request.delete, exam_id)
    except SQLAlchemyError as exc:
        raise AppError.storage(f"failed to update {step}", _describe(exc)) from exc

    logger.info("Exam %s edited", exam_id)
