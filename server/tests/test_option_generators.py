import json

import httpx
import pytest

from conftest import FakeUpstream, gemini_reply
from examhub.errors import AppError, ErrorKind
from examhub.generators import DISTRACTOR_TEMPLATES, SIMILAR_TEMPLATES, CONTEXT_TEMPLATE, DistractorType, Language
from examhub.generators.base import clean_llm_json_output, parse_options
from examhub.generators.factory import build_generators
from examhub.services.llm_service import LLMService
from examhub.services.prompt_management import PromptLibrary

FOUR = json.dumps({"responses": ["a", "b", "c", "d"]})


class TestParseOptions:
    def test_plain_json(self):
        assert parse_options(FOUR).responses == ["a", "b", "c", "d"]

    def test_fenced_json(self):
        assert parse_options(f"```json\n{FOUR}\n```").responses == ["a", "b", "c", "d"]

    def test_text_around_json(self):
        assert clean_llm_json_output(f"Here you go:\n{FOUR}\nGood luck!") == FOUR

    @pytest.mark.parametrize("responses", [["a", "b", "c"], ["a", "b", "c", "d", "e"], []])
    def test_wrong_count_is_rejected(self, responses):
        with pytest.raises(AppError) as exc_info:
            parse_options(json.dumps({"responses": responses}))
        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert f"got {len(responses)}" in exc_info.value.message

    def test_wrong_shape_is_rejected(self):
        with pytest.raises(AppError) as exc_info:
            parse_options(json.dumps({"answers": ["a", "b", "c", "d"]}))
        assert exc_info.value.kind == ErrorKind.VALIDATION

    @pytest.mark.parametrize("raw", ["no json here", "{not: valid}"])
    def test_unparseable_output_is_upstream(self, raw):
        with pytest.raises(AppError) as exc_info:
            parse_options(raw)
        assert exc_info.value.kind == ErrorKind.UPSTREAM


class TestPromptLibrary:
    def test_every_template_exists_and_renders(self, settings):
        prompts = PromptLibrary(settings.prompts_dir)
        names = [CONTEXT_TEMPLATE, *SIMILAR_TEMPLATES.values(), *DISTRACTOR_TEMPLATES.values()]
        for name in names:
            text = prompts.render(name, question="Q ____", correct_answer="A")
            assert "Q ____" in text
            assert "{question}" not in text
            assert '{"responses"' in text

    def test_values_are_not_substituted_again(self, settings):
        text = PromptLibrary(settings.prompts_dir).render(
            CONTEXT_TEMPLATE, question="Fill {correct_answer} here", correct_answer="SECRET"
        )
        assert "Question: Fill {correct_answer} here" in text
        assert "Correct answer: SECRET" in text

    def test_missing_template_is_internal_error(self, tmp_path):
        with pytest.raises(AppError) as exc_info:
            PromptLibrary(str(tmp_path)).render("nope", question="q", correct_answer="a")
        assert exc_info.value.kind == ErrorKind.INTERNAL


@pytest.fixture
def generators(settings):
    upstream = FakeUpstream()
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    llm = LLMService(settings, client)
    return upstream, build_generators(llm, PromptLibrary(settings.prompts_dir))


@pytest.mark.anyio
class TestGenerators:
    async def test_context_generator_urdu(self, generators):
        upstream, gens = generators
        result = await gens["context"].generate("پاکستان کا دارالحکومت ____ ہے", "اسلام آباد", language=Language.URDU)
        assert len(result.responses) == 4
        assert "اسلام آباد" in upstream.prompts[0]

    async def test_context_generator_rejects_arabic_without_calling_llm(self, generators):
        upstream, gens = generators
        with pytest.raises(AppError) as exc_info:
            await gens["context"].generate("q", "a", language=Language.ARABIC)
        assert exc_info.value.message == "Arabic language is not supported for this endpoint"
        assert upstream.requests == []

    async def test_quranic_generator_uses_type_template(self, generators):
        upstream, gens = generators
        await gens["quranic"].generate("q", "a", distractor_type=DistractorType.DIACRITIC)
        assert "harakat" in upstream.prompts[0]

    async def test_llm_error_status_is_upstream(self, generators):
        upstream, gens = generators
        upstream.llm_response = httpx.Response(503, text="overloaded")
        with pytest.raises(AppError) as exc_info:
            await gens["similar"].generate("q", "a", language=Language.ARABIC)
        assert exc_info.value.kind == ErrorKind.UPSTREAM

    async def test_missing_candidate_text_is_upstream(self, generators):
        upstream, gens = generators
        upstream.llm_response = httpx.Response(200, json={"candidates": []})
        with pytest.raises(AppError) as exc_info:
            await gens["similar"].generate("q", "a", language=Language.URDU)
        assert exc_info.value.kind == ErrorKind.UPSTREAM


def test_request_body_and_url(settings):
    body = LLMService.build_request_body("hello", 1, 0.7)
    assert body == {
        "contents": [{"parts": [{"text": "hello"}]}],
        "generationConfig": {"candidateCount": 1, "temperature": 0.7},
    }
    assert settings.text_generation_url.endswith("/models/gemini-1.5-flash:generateContent?key=test-key")


def test_extract_text():
    assert LLMService.extract_text(gemini_reply("hi").json()) == "hi"


def test_unknown_provider_is_rejected(settings):
    with pytest.raises(ValueError):
        LLMService(settings.model_copy(update={"llm_provider": "other"}), httpx.AsyncClient())
