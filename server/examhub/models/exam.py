from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from examhub.database import Base


class Exam(Base):
    """Identity row at the root of an exam tree"""
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, autoincrement=False)

    # Relationships
    description = relationship(
        "ExamDescription", back_populates="exam", uselist=False, passive_deletes=True
    )


class ExamDescription(Base):
    """Exam metadata, one per exam"""
    __tablename__ = "exam_descriptions"

    id = Column(Integer, primary_key=True, autoincrement=False)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # Minutes
    passing_score = Column(Integer, nullable=False)

    # Relationships
    exam = relationship("Exam", back_populates="description")
    sections = relationship("Section", back_populates="exam_description", passive_deletes=True)


class Section(Base):
    __tablename__ = "sections"

    id = Column(Integer, primary_key=True, autoincrement=False)
    exam_description_id = Column(
        Integer, ForeignKey("exam_descriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(Text, nullable=False)

    # Relationships
    exam_description = relationship("ExamDescription", back_populates="sections")
    questions = relationship("Question", back_populates="section", passive_deletes=True)


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=False)
    section_id = Column(Integer, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    marks = Column(Integer, nullable=False)

    # Relationships
    section = relationship("Section", back_populates="questions")
    options = relationship("Option", back_populates="question", passive_deletes=True)


class Option(Base):
    __tablename__ = "options"

    id = Column(Integer, primary_key=True, autoincrement=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(String, nullable=False)
    is_correct = Column(Boolean, nullable=True)

    # Relationships
    question = relationship("Question", back_populates="options")

    def __repr__(self):
        return f"<Option {self.id} ({'correct' if self.is_correct else 'distractor'})>"
