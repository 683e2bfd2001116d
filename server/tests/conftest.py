import fnmatch
import json

import httpx
import pytest
import redis
from fastapi.testclient import TestClient

from examhub.config import Settings
from examhub.database import Database
from examhub.main import create_app
from examhub.services.exam_cache import ExamCache


class FakePipeline:
    """Queues commands until execute(); WATCHed keys are checked first, as in MULTI/EXEC."""

    def __init__(self, client):
        self.redis = client
        self.calls = []
        self.watched = {}

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.reset()

    def reset(self):
        self.calls = []
        self.watched = {}

    def watch(self, *keys):
        for key in keys:
            self.watched[key] = self.redis.get(key)

    def get(self, key):
        return self.redis.get(key)

    def multi(self):
        pass

    def __getattr__(self, name):
        if name not in ("hgetall", "hset", "expire", "delete", "incr"):
            raise AttributeError(name)

        def queue(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return queue

    def execute(self):
        hook, self.redis.before_exec = self.redis.before_exec, None
        if hook is not None:
            hook()
        if any(self.redis.get(key) != value for key, value in self.watched.items()):
            self.reset()
            raise redis.WatchError("Watched variable changed.")
        results = [getattr(self.redis, name)(*args, **kwargs) for name, args, kwargs in self.calls]
        self.reset()
        return results


class FakeRedis:
    """Just enough of redis.Redis for ExamCache."""

    def __init__(self):
        self.hashes = {}
        self.strings = {}
        self.ttls = {}
        self.closed = False
        # Runs once, right before the next pipeline EXEC
        self.before_exec = None

    def get(self, key):
        return self.strings.get(key)

    def incr(self, key):
        value = int(self.strings.get(key, 0)) + 1
        self.strings[key] = str(value)
        return value

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def hset(self, key, mapping):
        self.hashes.setdefault(key, {}).update(mapping)
        return len(mapping)

    def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    def scan_iter(self, match):
        return iter([key for key in list(self.hashes) if fnmatch.fnmatchcase(key, match)])

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None or self.strings.pop(key, None) is not None:
                removed += 1
        return removed

    def close(self):
        self.closed = True


def gemini_reply(text, status_code=200):
    return httpx.Response(status_code, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


class FakeUpstream:
    """Routes outbound HTTP calls to canned LLM and verse API replies."""

    def __init__(self):
        self.llm_text = json.dumps({"responses": ["4", "5", "6", "7"]})
        self.llm_response = None
        self.verse_response = httpx.Response(200, json={"code": 200, "status": "OK", "data": {"number": 1, "text": "..."}})
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if "generateContent" in request.url.path:
            return self.llm_response or gemini_reply(self.llm_text)
        return self.verse_response

    @property
    def prompts(self):
        return [
            json.loads(r.content)["contents"][0]["parts"][0]["text"]
            for r in self.requests
            if "generateContent" in r.url.path
        ]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'examhub.db'}",
        gemini_api_key="test-key",
        llm_provider="gemini",
    )


@pytest.fixture
def database(settings):
    db = Database(settings)
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    s = database.session()
    yield s
    s.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def app(settings, upstream):
    return create_app(settings, transport=httpx.MockTransport(upstream), exam_cache=None)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def cached_client(settings, upstream, fake_redis):
    cache = ExamCache(fake_redis, ttl_seconds=60)
    app = create_app(settings, transport=httpx.MockTransport(upstream), exam_cache=cache)
    with TestClient(app) as c:
        yield c


def math_quiz(exam_id=1):
    """Exam 1: one Algebra section, one question, two options."""
    return {
        "exam_id": exam_id,
        "description": {
            "id": exam_id,
            "title": "Math Quiz",
            "description": "Basic arithmetic",
            "duration": 30,
            "passing_score": 50,
        },
        "sections": [
            {
                "id": 10,
                "title": "Algebra",
                "questions": [
                    {
                        "id": 100,
                        "text": "2+2=?",
                        "marks": 1,
                        "options": [
                            {"id": 1000, "text": "4", "is_correct": True},
                            {"id": 1001, "text": "5", "is_correct": False},
                        ],
                    }
                ],
            }
        ],
    }


def two_section_exam(exam_id=2):
    """Exam with two sections, one of them empty, and a question without options."""
    return {
        "exam_id": exam_id,
        "description": {"id": 20, "title": "Mixed", "duration": 45, "passing_score": 60},
        "sections": [
            {
                "id": 21,
                "title": "Part A",
                "questions": [
                    {
                        "id": 210,
                        "text": "Capital of France?",
                        "description": "Geography",
                        "marks": 2,
                        "options": [
                            {"id": 2100, "text": "Paris", "is_correct": True},
                            {"id": 2101, "text": "Rome"},
                        ],
                    },
                    {"id": 211, "text": "Explain gravity", "marks": 5, "options": []},
                ],
            },
            {"id": 22, "title": "Part B", "questions": []},
        ],
    }


@pytest.fixture
def anyio_backend():
    return "asyncio"
