"""
RAG pipeline: retrieval, bounded context, styled generation, confidence and follow-ups.
"""

import threading

import pytest
from unittest.mock import MagicMock

from lessonrag.core.rag_pipeline import (
    CLARIFYING_QUESTIONS,
    GENERIC_FOLLOW_UPS,
    MAX_CONFIDENCE,
    NO_INFORMATION_ANSWER,
    PRACTICE_FOLLOW_UPS,
    assemble_context,
    build_system_prompt,
    calculate_confidence,
    make_snippet,
    parse_follow_ups,
)
from lessonrag.core.service import RAGSearchService
from lessonrag.providers.gateway import APOLOGY_TEXT, ProviderGateway
from lessonrag.vector.embeddings import DeterministicHashEmbedding
from lessonrag.vector.types import (
    DocumentMetadata,
    NewDocument,
    RAGOptions,
    ResponseStyle,
    ScoredDocument,
    VectorDocument,
)

ANSWER = "Lower temperatures give focused answers; higher ones give more varied answers."


def fake_complete(follow_ups='["What is top-p?", "When should I raise temperature?"]'):
    """Completion stand-in that answers generation and follow-up prompts differently."""
    def complete(system_prompt, messages, temperature=0.7, max_tokens=None):
        if "follow-up" in system_prompt:
            if isinstance(follow_ups, Exception):
                raise follow_ups
            return follow_ups
        return ANSWER
    return complete


@pytest.fixture
def completion_provider():
    provider = MagicMock()
    provider.complete.side_effect = fake_complete()
    return provider


@pytest.fixture
def service(completion_provider):
    gateway = ProviderGateway(
        embedding_provider=DeterministicHashEmbedding(1024),
        completion_provider=completion_provider,
        dimension=1024,
    )
    service = RAGSearchService(gateway)
    yield service
    service.close()


def add(service, content, title, topics=()):
    return service.store.add(NewDocument(
        content=content,
        metadata=DocumentMetadata(title=title, source="AI Mind OS Advanced Techniques", type="concept",
                                  difficulty="intermediate", topics=list(topics)),
    ))


@pytest.fixture
def populated(service):
    add(service, "Temperature controls randomness in AI responses. Lower values are more deterministic.",
        "Temperature Control", ["temperature"])
    add(service, "Top-p sampling also controls randomness by limiting the candidate tokens.",
        "Top-p Sampling", ["sampling"])
    add(service, "Role prompts assign the model a persona such as a senior engineer.",
        "Role Prompting", ["roles"])
    return service


def scored(title, content, similarity=0.5):
    document = VectorDocument(id=title, content=content, metadata=DocumentMetadata(
        title=title, source="s", type="concept", difficulty="beginner"))
    return ScoredDocument(document=document, similarity=similarity)


def test_empty_store_returns_no_information(service, completion_provider):
    """Zero qualifying documents is a terminal state, not an error."""
    result = service.ask("What does temperature control?")

    assert result.answer == NO_INFORMATION_ANSWER
    assert result.sources == []
    assert result.confidence == 0
    assert result.follow_up_questions == CLARIFYING_QUESTIONS
    completion_provider.complete.assert_not_called()


def test_answer_with_sources_and_follow_ups(populated, completion_provider):
    result = populated.rag_query("How does temperature control randomness?")

    assert result.answer == ANSWER
    assert result.sources
    assert result.sources[0].title == "Temperature Control"
    assert "Role Prompting" not in [source.title for source in result.sources]
    assert 0 <= result.confidence <= MAX_CONFIDENCE
    assert result.follow_up_questions == ["What is top-p?", "When should I raise temperature?"]
    assert completion_provider.complete.call_count == 2


def test_generation_prompt_carries_context_and_style(populated, completion_provider):
    populated.rag_query("How does temperature control randomness?",
                        RAGOptions(response_style=ResponseStyle.CONCISE, include_follow_up=False))

    system_prompt, messages = completion_provider.complete.call_args.args
    assert system_prompt == build_system_prompt(ResponseStyle.CONCISE)
    assert "Keep responses focused" in system_prompt
    assert messages[0]["role"] == "user"
    assert "[Source 1: Temperature Control]" in messages[0]["content"]
    assert messages[0]["content"].endswith("Question: How does temperature control randomness?")
    assert completion_provider.complete.call_args.kwargs["temperature"] == pytest.approx(0.3)


def test_no_follow_ups_when_disabled(populated, completion_provider):
    result = populated.ask("How does temperature control randomness?", include_follow_up=False)

    assert result.follow_up_questions == []
    assert completion_provider.complete.call_count == 1


def test_max_sources_bounds_sources(populated):
    result = populated.rag_query("How does temperature control randomness?", RAGOptions(max_sources=1))

    assert len(result.sources) == 1


def test_unparseable_follow_ups_use_practice_set(populated, completion_provider):
    completion_provider.complete.side_effect = fake_complete(follow_ups="1. What next?\n2. Why?")

    result = populated.ask("How does temperature control randomness?")

    assert result.follow_up_questions == PRACTICE_FOLLOW_UPS


def test_failed_follow_ups_use_generic_set(populated, completion_provider):
    completion_provider.complete.side_effect = fake_complete(follow_ups=RuntimeError("model crashed"))

    result = populated.ask("How does temperature control randomness?")

    assert result.answer == ANSWER
    assert result.follow_up_questions == GENERIC_FOLLOW_UPS


def test_generation_failure_still_answers(populated, completion_provider):
    """A dead completion provider yields the apology, sources, and generic follow-ups."""
    completion_provider.complete.side_effect = ConnectionError("refused")

    result = populated.ask("How does temperature control randomness?")

    assert result.answer == APOLOGY_TEXT
    assert result.sources
    assert result.follow_up_questions == GENERIC_FOLLOW_UPS
    assert 0 <= result.confidence <= MAX_CONFIDENCE


def test_generation_timeout_still_answers():
    """A completion provider that hangs past the timeout still leaves sources and a confidence."""
    release = threading.Event()
    hanging = MagicMock()
    hanging.complete.side_effect = lambda *args, **kwargs: release.wait(5) or ANSWER
    gateway = ProviderGateway(
        embedding_provider=DeterministicHashEmbedding(1024),
        completion_provider=hanging,
        dimension=1024,
        timeout_sec=0.2,
    )
    service = RAGSearchService(gateway)

    try:
        add(service, "Temperature controls randomness in AI responses. Lower values are more deterministic.",
            "Temperature Control", ["temperature"])
        result = service.ask("How does temperature control randomness?")
    finally:
        release.set()
        service.close()

    assert result.answer == APOLOGY_TEXT
    assert result.sources[0].title == "Temperature Control"
    assert 0 < result.confidence <= MAX_CONFIDENCE
    assert result.follow_up_questions == GENERIC_FOLLOW_UPS
    assert hanging.complete.call_count == 2


def test_source_fields(populated):
    result = populated.ask("How does temperature control randomness?")
    source = result.sources[0]

    assert source.source == "AI Mind OS Advanced Techniques"
    assert 0 <= source.relevance <= 100
    assert source.snippet.startswith("Temperature controls randomness")
    assert set(result.to_dict()) == {"answer", "sources", "confidence", "followUpQuestions"}


@pytest.mark.parametrize("avg_similarity,count,expected", [
    (0.0, 0, 0),
    (0.5, 1, 52),
    (0.5, 5, 60),
    (0.5, 12, 60),
    (0.9, 5, 95),
    (1.0, 10, 95),
    (-0.4, 3, 0),
])
def test_calculate_confidence(avg_similarity, count, expected):
    assert calculate_confidence(avg_similarity, count) == expected


def test_assemble_context_labels_sources():
    context = assemble_context([scored("A", "alpha"), scored("B", "beta")])

    assert context == "[Source 1: A]\nalpha\n\n[Source 2: B]\nbeta"


def test_assemble_context_truncates_and_stops():
    """Whole passages while they fit; the first that does not is cut and nothing follows."""
    documents = [scored("A", "a" * 20), scored("B", "b" * 50), scored("C", "c")]

    context = assemble_context(documents, max_chars=60)

    assert len(context) == 60
    assert context.startswith("[Source 1: A]\n" + "a" * 20)
    assert "[Source 2: B]" in context
    assert "[Source 3" not in context


def test_make_snippet():
    assert make_snippet("short") == "short"
    assert make_snippet("x" * 200) == "x" * 150 + "..."


@pytest.mark.parametrize("text,expected", [
    ('["Q1", "Q2"]', ["Q1", "Q2"]),
    ('```json\n["Q1", " ", "Q2"]\n```', ["Q1", "Q2"]),
    ('{"questions": ["Q1"]}', None),
    ("[]", None),
    ("not json", None),
])
def test_parse_follow_ups(text, expected):
    assert parse_follow_ups(text) == expected


def test_every_style_has_a_prompt():
    prompts = {build_system_prompt(style) for style in ResponseStyle}
    assert len(prompts) == 3
