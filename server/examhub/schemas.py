from pydantic import BaseModel, BeforeValidator, Field
from typing import Annotated, Any, List, Optional

from examhub.generators import Language


def _unwrap_id(value: Any) -> Any:
    """Accept `1`, `{"id": 1}` and `{"exam_id": 1}` for root exam ids."""
    if isinstance(value, dict):
        for key in ("id", "exam_id"):
            if key in value:
                return value[key]
    return value


ExamId = Annotated[int, BeforeValidator(_unwrap_id)]


# =============================================================================
# Exam tree (create)
# =============================================================================

class OptionCreate(BaseModel):
    id: int
    question_id: Optional[int] = None  # Defaults to the enclosing question
    text: str
    is_correct: Optional[bool] = None


class QuestionCreate(BaseModel):
    id: int
    section_id: Optional[int] = None  # Defaults to the enclosing section
    text: str
    description: Optional[str] = None
    marks: int
    options: List[OptionCreate] = []


class SectionCreate(BaseModel):
    id: int
    exam_description_id: Optional[int] = None
    title: str
    questions: List[QuestionCreate] = []


class ExamDescriptionCreate(BaseModel):
    id: int
    exam_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    duration: int
    passing_score: int


class ExamCreateRequest(BaseModel):
    """Full exam tree with caller-supplied ids."""
    exam_id: ExamId
    description: ExamDescriptionCreate
    sections: List[SectionCreate] = []


class ExamCreatedResponse(BaseModel):
    exam_id: int


# =============================================================================
# Exam tree (read)
# =============================================================================

class OptionResponse(BaseModel):
    id: int
    question_id: int
    text: str
    is_correct: Optional[bool] = None


class QuestionResponse(BaseModel):
    id: int
    section_id: int
    text: str
    description: Optional[str] = None
    marks: int
    options: List[OptionResponse] = []


class SectionResponse(BaseModel):
    id: int
    exam_description_id: int
    title: str
    questions: List[QuestionResponse] = []


class ExamDescriptionResponse(BaseModel):
    id: int
    exam_id: int
    title: str
    description: Optional[str] = None
    duration: int
    passing_score: int

    class Config:
        from_attributes = True


class ExamResponse(BaseModel):
    exam_id: int
    description: ExamDescriptionResponse
    sections: List[SectionResponse] = []


# =============================================================================
# Exam edit
# =============================================================================

class SectionEdit(BaseModel):
    id: int
    title: str


class QuestionEdit(BaseModel):
    id: int
    text: str
    description: Optional[str] = None
    marks: int


class OptionEdit(BaseModel):
    id: int
    text: str
    is_correct: Optional[bool] = None


class DeleteIdsRequest(BaseModel):
    section_ids: List[int] = []
    question_ids: List[int] = []
    option_ids: List[int] = []

    def is_all_empty(self) -> bool:
        return not (self.section_ids or self.question_ids or self.option_ids)


class EditExamRequest(BaseModel):
    """Field updates plus deletions for one exam."""
    exam_id: ExamId
    sections: List[SectionEdit] = []
    questions: List[QuestionEdit] = []
    options: List[OptionEdit] = []
    delete: DeleteIdsRequest = Field(default_factory=DeleteIdsRequest)

    def is_noop(self) -> bool:
        return not (self.sections or self.questions or self.options) and self.delete.is_all_empty()


# =============================================================================
# MCQ option generation
# =============================================================================

class McqOptionsRequest(BaseModel):
    question: str
    correct_answer: str
    language: Language


class QuranicDistractorRequest(BaseModel):
    question: str
    correct_answer: str


class McqOptionsResponse(BaseModel):
    """Exactly four options, the correct answer among them."""
    responses: List[str]


# =============================================================================
# Verse lookup
# =============================================================================

class VerseRequest(BaseModel):
    surah: int = Field(ge=1, le=114)
    verse: int = Field(ge=1)
