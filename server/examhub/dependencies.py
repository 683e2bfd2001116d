"""
Request-scoped accessors for the clients created at startup.
"""
from typing import Optional

from fastapi import Request

from examhub.errors import AppError
from examhub.generators.base import BaseOptionsGenerator
from examhub.generators.factory import get_generator
from examhub.services.exam_cache import ExamCache
from examhub.services.quran_api import QuranApiClient


def get_exam_cache(request: Request) -> Optional[ExamCache]:
    return request.app.state.exam_cache


def get_quran_api(request: Request) -> QuranApiClient:
    return request.app.state.quran_api


def _generator(request: Request, kind: str) -> BaseOptionsGenerator:
    generator = get_generator(request.app.state.generators, kind)
    if generator is None:
        raise AppError.internal(f"No generator registered for {kind}")
    return generator


def get_context_generator(request: Request) -> BaseOptionsGenerator:
    return _generator(request, "context")


def get_similar_generator(request: Request) -> BaseOptionsGenerator:
    return _generator(request, "similar")


def get_quranic_generator(request: Request) -> BaseOptionsGenerator:
    return _generator(request, "quranic")
