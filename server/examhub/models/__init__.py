"""
Models package initialization
Import all models here to ensure they are registered with SQLAlchemy
"""

from examhub.models.exam import Exam, ExamDescription, Section, Question, Option

__all__ = [
    "Exam",
    "ExamDescription",
    "Section",
    "Question",
    "Option",
]
