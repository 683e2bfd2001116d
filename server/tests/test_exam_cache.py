import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import FakeRedis, math_quiz
from examhub.config import Settings
from examhub.errors import AppError, ErrorKind
from examhub.schemas import EditExamRequest, ExamCreateRequest, ExamResponse
from examhub.services import exam_repository
from examhub.services.exam_cache import ExamCache


def sample_exam():
    return ExamResponse(**{
        "exam_id": 2,
        "description": {"id": 20, "exam_id": 2, "title": "Mixed", "duration": 45, "passing_score": 60},
        "sections": [
            {
                "id": 21,
                "exam_description_id": 20,
                "title": "Part A",
                "questions": [
                    {"id": 211, "section_id": 21, "text": "Explain gravity", "description": "", "marks": 5},
                    {
                        "id": 210,
                        "section_id": 21,
                        "text": "Capital of France?",
                        "description": "Geography",
                        "marks": 2,
                        "options": [
                            {"id": 2100, "question_id": 210, "text": "Paris", "is_correct": True},
                            {"id": 2101, "question_id": 210, "text": "Rome", "is_correct": False},
                        ],
                    },
                ],
            },
            {"id": 22, "exam_description_id": 20, "title": "Part B"},
        ],
    })


@pytest.fixture
def cache():
    return ExamCache(FakeRedis(), ttl_seconds=120)


def test_miss_returns_none(cache):
    assert cache.get_exam(2) is None


def test_put_then_get(cache):
    cache.put_exam(sample_exam(), 0)

    exam = cache.get_exam(2)

    assert exam.description.title == "Mixed"
    assert [s.id for s in exam.sections] == [21, 22]
    assert [q.id for q in exam.sections[0].questions] == [210, 211]
    assert exam.sections[0].questions[0].options[0].text == "Paris"
    assert exam.sections[1].questions == []


def test_keys_carry_ttl(cache):
    cache.put_exam(sample_exam(), 0)
    assert cache.client.ttls == {
        "exam:2": 120,
        "exam:2:question:210": 120,
        "exam:2:question:211": 120,
    }


def test_invalidate_removes_every_key(cache):
    cache.put_exam(sample_exam(), 0)
    cache.invalidate(2)
    assert cache.client.hashes == {}
    assert cache.get_exam(2) is None


def test_unreadable_entry_is_dropped(cache):
    cache.put_exam(sample_exam(), 0)
    cache.client.hashes["exam:2"]["sections"] = "not json"

    assert cache.get_exam(2) is None
    assert cache.client.hashes == {}


def test_redis_failure_is_storage_error(cache, monkeypatch):
    def down(key):
        raise RedisConnectionError("connection refused")

    monkeypatch.setattr(cache.client, "hgetall", down)
    with pytest.raises(AppError) as exc_info:
        cache.get_exam(2)
    assert exc_info.value.kind == ErrorKind.STORAGE


def test_disabled_without_redis_url():
    assert ExamCache.from_settings(Settings(_env_file=None, redis_url=None)) is None


def test_invalidate_bumps_version(cache):
    assert cache.current_version(2) == 0
    cache.invalidate(2)
    cache.invalidate(2)
    assert cache.current_version(2) == 2


def test_tree_read_before_invalidation_is_not_cached(cache):
    version = cache.current_version(2)
    cache.invalidate(2)

    assert cache.put_exam(sample_exam(), version) is False
    assert cache.get_exam(2) is None


def test_invalidation_between_watch_and_exec_wins(cache):
    cache.client.before_exec = lambda: cache.invalidate(2)

    assert cache.put_exam(sample_exam(), cache.current_version(2)) is False
    assert cache.client.hashes == {}


def test_edit_racing_a_cache_fill(cache, database, session):
    exam_repository.insert_exam(session, ExamCreateRequest(**math_quiz()))

    version = cache.current_version(1)
    snapshot = exam_repository.read_exam(session, 1)
    with database.session() as writer:
        exam_repository.edit_exam(writer, EditExamRequest(exam_id=1, sections=[{"id": 10, "title": "Changed"}]))
    cache.invalidate(1)

    assert cache.put_exam(snapshot, version) is False
    assert cache.get_exam(1) is None

    fresh = exam_repository.read_exam(session, 1)
    assert cache.put_exam(fresh, cache.current_version(1)) is True
    assert cache.get_exam(1).sections[0].title == "Changed"
