"""
Exam Cache Service.

Read-through cache of full exam trees in Redis, stored as hashes:
- exam:{exam_id}                        description + section list
- exam:{exam_id}:question:{question_id} one question with its options
- exam:{exam_id}:version                counter bumped on every invalidation

A reader takes the version before reading the database and only writes the
tree back if the version is still the same, so a tree read before an edit
cannot be cached after that edit's invalidation.
"""
import json
import logging
from typing import Dict, List, Optional

import redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from examhub.config import Settings
from examhub.errors import AppError
from examhub.schemas import (
    ExamDescriptionResponse,
    ExamResponse,
    OptionResponse,
    QuestionResponse,
    SectionResponse,
)

logger = logging.getLogger(__name__)


class ExamCache:
    """Stores exam trees as Redis hashes with a TTL."""

    FIELD_EXAM_ID = "exam_id"
    FIELD_DESCRIPTION = "description"
    FIELD_SECTIONS = "sections"
    FIELD_ID = "id"
    FIELD_SECTION_ID = "section_id"
    FIELD_TEXT = "text"
    FIELD_DETAILS = "description"
    FIELD_MARKS = "marks"
    FIELD_OPTIONS = "options"

    def __init__(self, client: redis.Redis, ttl_seconds: int = 3600):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["ExamCache"]:
        """Build a pooled cache, or None when no Redis URL is configured."""
        if not settings.redis_url:
            return None
        pool = redis.ConnectionPool.from_url(settings.redis_url, decode_responses=True)
        logger.info("Exam cache enabled (ttl=%ss)", settings.exam_cache_ttl_seconds)
        return cls(redis.Redis(connection_pool=pool), settings.exam_cache_ttl_seconds)

    @staticmethod
    def exam_key(exam_id: int) -> str:
        return f"exam:{exam_id}"

    @staticmethod
    def question_key(exam_id: int, question_id) -> str:
        return f"exam:{exam_id}:question:{question_id}"

    @staticmethod
    def version_key(exam_id: int) -> str:
        return f"exam:{exam_id}:version"

    def current_version(self, exam_id: int) -> int:
        """Version to hand back to put_exam after reading the database."""
        try:
            value = self.client.get(self.version_key(exam_id))
        except RedisError as exc:
            raise AppError.storage("failed to read cache version", str(exc)) from exc
        return int(value or 0)

    def _question_keys(self, exam_id: int) -> List[str]:
        return list(self.client.scan_iter(match=self.question_key(exam_id, "*")))

    def get_exam(self, exam_id: int) -> Optional[ExamResponse]:
        """Return the cached tree, or None on a miss."""
        try:
            metadata = self.client.hgetall(self.exam_key(exam_id))
            if not metadata:
                return None
            keys = self._question_keys(exam_id)
            records: List[Dict[str, str]] = []
            if keys:
                pipe = self.client.pipeline(transaction=False)
                for key in keys:
                    pipe.hgetall(key)
                records = pipe.execute()
        except RedisError as exc:
            raise AppError.storage("failed to read exam from cache", str(exc)) from exc

        try:
            return self._decode(exam_id, metadata, records)
        except (ValueError, KeyError, ValidationError) as exc:
            logger.warning("Dropping unreadable cache entry for exam %s: %s", exam_id, exc)
            self.invalidate(exam_id)
            return None

    def _decode(self, exam_id: int, metadata: Dict[str, str], records: List[Dict[str, str]]) -> ExamResponse:
        description = ExamDescriptionResponse.model_validate_json(metadata[self.FIELD_DESCRIPTION])
        sections = [
            SectionResponse(**section, questions=[])
            for section in json.loads(metadata[self.FIELD_SECTIONS])
        ]
        by_id = {section.id: section for section in sections}

        questions = []
        for record in records:
            if not record:
                continue  # expired between SCAN and HGETALL
            questions.append(QuestionResponse(
                id=int(record[self.FIELD_ID]),
                section_id=int(record[self.FIELD_SECTION_ID]),
                text=record[self.FIELD_TEXT],
                description=record.get(self.FIELD_DETAILS),
                marks=int(record[self.FIELD_MARKS]),
                options=[OptionResponse(**o) for o in json.loads(record[self.FIELD_OPTIONS])],
            ))

        for question in sorted(questions, key=lambda q: q.id):
            section = by_id.get(question.section_id)
            if section is None:
                raise KeyError(f"question {question.id} points at uncached section {question.section_id}")
            section.questions.append(question)

        return ExamResponse(exam_id=exam_id, description=description, sections=sections)

    def put_exam(self, exam: ExamResponse, expected_version: int) -> bool:
        """
        Write the whole tree atomically (WATCH/MULTI/EXEC).

        Nothing is written when the exam was invalidated after
        `expected_version` was taken; returns whether the tree was stored.
        """
        exam_key = self.exam_key(exam.exam_id)
        version_key = self.version_key(exam.exam_id)
        sections = [
            {"id": s.id, "exam_description_id": s.exam_description_id, "title": s.title}
            for s in exam.sections
        ]
        try:
            with self.client.pipeline(transaction=True) as pipe:
                pipe.watch(version_key)
                if int(pipe.get(version_key) or 0) != expected_version:
                    logger.info("Exam %s changed while it was read, not caching", exam.exam_id)
                    return False
                pipe.multi()
                self._queue_tree(pipe, exam, exam_key, sections)
                pipe.execute()
        except redis.WatchError:
            logger.info("Exam %s invalidated during cache write, not caching", exam.exam_id)
            return False
        except RedisError as exc:
            raise AppError.storage("failed to write exam to cache", str(exc)) from exc
        return True

    def _queue_tree(self, pipe, exam: ExamResponse, exam_key: str, sections: List[Dict]) -> None:
        pipe.hset(exam_key, mapping={
            self.FIELD_EXAM_ID: str(exam.exam_id),
            self.FIELD_DESCRIPTION: exam.description.model_dump_json(),
            self.FIELD_SECTIONS: json.dumps(sections, ensure_ascii=False),
        })
        pipe.expire(exam_key, self.ttl_seconds)

        for section in exam.sections:
            for question in section.questions:
                key = self.question_key(exam.exam_id, question.id)
                pipe.hset(key, mapping={
                    self.FIELD_ID: str(question.id),
                    self.FIELD_SECTION_ID: str(section.id),
                    self.FIELD_TEXT: question.text,
                    self.FIELD_DETAILS: question.description or "",
                    self.FIELD_MARKS: str(question.marks),
                    self.FIELD_OPTIONS: json.dumps(
                        [o.model_dump() for o in question.options], ensure_ascii=False
                    ),
                })
                pipe.expire(key, self.ttl_seconds)

    def invalidate(self, exam_id: int) -> None:
        """Drop the cached tree and bump the version so in-flight reads are not cached."""
        try:
            keys = [self.exam_key(exam_id)] + self._question_keys(exam_id)
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(*keys)
            pipe.incr(self.version_key(exam_id))
            pipe.execute()
        except RedisError as exc:
            raise AppError.storage("failed to invalidate cached exam", str(exc)) from exc

    def close(self) -> None:
        self.client.close()
