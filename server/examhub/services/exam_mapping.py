"""
Exam Mapping Service.

Translates between the nested exam tree used on the wire and the flat rows
used by the relational store:
- flatten_exam: nested create request -> one row batch per table
- regroup_rows: flat outer-join rows -> nested sections/questions/options
- expand_deletions: requested ids -> ids to delete, including descendants
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from examhub.schemas import (
    DeleteIdsRequest,
    ExamCreateRequest,
    OptionResponse,
    QuestionResponse,
    SectionResponse,
)

# (section_id, question_id, option_id) as produced by the hierarchy query
HierarchyRow = Tuple[Optional[int], Optional[int], Optional[int]]


@dataclass
class ExamRows:
    """Row batches for one exam, in insert order."""
    exam: Dict[str, Any]
    description: Dict[str, Any]
    sections: List[Dict[str, Any]] = field(default_factory=list)
    questions: List[Dict[str, Any]] = field(default_factory=list)
    options: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class DeletionPlan:
    section_ids: List[int] = field(default_factory=list)
    question_ids: List[int] = field(default_factory=list)
    option_ids: List[int] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.section_ids or self.question_ids or self.option_ids)


def flatten_exam(request: ExamCreateRequest) -> ExamRows:
    """
    Flatten a nested exam tree into per-table rows.

    Children default their parent id to the enclosing node. An explicit parent
    id must name a node of the submitted tree, otherwise ValueError is raised
    before anything is written.
    """
    exam_id = request.exam_id
    desc = request.description
    if desc.exam_id is not None and desc.exam_id != exam_id:
        raise ValueError(f"description {desc.id} references exam {desc.exam_id}, expected {exam_id}")

    rows = ExamRows(
        exam={"id": exam_id},
        description={
            "id": desc.id,
            "exam_id": exam_id,
            "title": desc.title,
            "description": desc.description or "",
            "duration": desc.duration,
            "passing_score": desc.passing_score,
        },
    )

    section_ids: Set[int] = {s.id for s in request.sections}
    question_ids: Set[int] = {q.id for s in request.sections for q in s.questions}

    for section in request.sections:
        if section.exam_description_id is not None and section.exam_description_id != desc.id:
            raise ValueError(
                f"section {section.id} references description {section.exam_description_id}, expected {desc.id}"
            )
        rows.sections.append({"id": section.id, "exam_description_id": desc.id, "title": section.title})

        for question in section.questions:
            parent_section = question.section_id if question.section_id is not None else section.id
            if parent_section not in section_ids:
                raise ValueError(f"question {question.id} references unknown section {parent_section}")
            rows.questions.append({
                "id": question.id,
                "section_id": parent_section,
                "text": question.text,
                "description": question.description or "",
                "marks": question.marks,
            })

            for option in question.options:
                parent_question = option.question_id if option.question_id is not None else question.id
                if parent_question not in question_ids:
                    raise ValueError(f"option {option.id} references unknown question {parent_question}")
                rows.options.append({
                    "id": option.id,
                    "question_id": parent_question,
                    "text": option.text,
                    "is_correct": bool(option.is_correct),
                })

    return rows


def regroup_rows(rows: Iterable[Mapping[str, Any]]) -> List[SectionResponse]:
    """
    Rebuild the section tree from outer-join rows in a single pass.

    Each row carries section_*, question_* and option_* columns; question and
    option columns are None where the outer join found no child. Sections and
    questions keep the order in which they are first seen.
    """
    sections: Dict[int, SectionResponse] = {}
    questions: Dict[Tuple[int, int], QuestionResponse] = {}

    for row in rows:
        section_id = row["section_id"]
        if section_id is None:
            continue

        section = sections.get(section_id)
        if section is None:
            section = SectionResponse(
                id=section_id,
                exam_description_id=row["section_exam_description_id"],
                title=row["section_title"],
                questions=[],
            )
            sections[section_id] = section

        question_id = row["question_id"]
        if question_id is None:
            continue

        question = questions.get((section_id, question_id))
        if question is None:
            question = QuestionResponse(
                id=question_id,
                section_id=section_id,
                text=row["question_text"],
                description=row["question_description"],
                marks=row["question_marks"],
                options=[],
            )
            questions[(section_id, question_id)] = question
            section.questions.append(question)

        if row["option_id"] is not None:
            question.options.append(OptionResponse(
                id=row["option_id"],
                question_id=question_id,
                text=row["option_text"],
                is_correct=row["option_is_correct"],
            ))

    return list(sections.values())


def expand_deletions(
    request: DeleteIdsRequest,
    hierarchy: Iterable[HierarchyRow],
    restrict_to_hierarchy: bool = False,
) -> DeletionPlan:
    """
    Add every descendant of a requested section or question to the plan.

    `hierarchy` is a snapshot of current parent/child links read from the
    store. With `restrict_to_hierarchy`, requested ids absent from the
    snapshot are dropped (used to keep an edit inside its own exam).
    """
    hierarchy = list(hierarchy)
    sections = set(request.section_ids)
    questions = set(request.question_ids)
    options = set(request.option_ids)

    if restrict_to_hierarchy:
        sections &= {s for s, _, _ in hierarchy if s is not None}
        questions &= {q for _, q, _ in hierarchy if q is not None}
        options &= {o for _, _, o in hierarchy if o is not None}

    for section_id, question_id, _ in hierarchy:
        if section_id in sections and question_id is not None:
            questions.add(question_id)

    for _, question_id, option_id in hierarchy:
        if question_id in questions and option_id is not None:
            options.add(option_id)

    return DeletionPlan(
        section_ids=sorted(sections),
        question_ids=sorted(questions),
        option_ids=sorted(options),
    )
