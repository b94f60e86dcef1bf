"""Tests for content parsing and the LLM-backed provider."""

import asyncio
import json

import pytest

from shopfloor.content import (
    LLMContentProvider,
    OFFLINE_CUSTOMER_LINES,
    OfflineContentProvider,
    extract_json_text,
    format_transcript,
    parse_model,
)
from shopfloor.errors import ContentGenerationError, EvaluationError
from shopfloor.llm import MockLLMClient
from shopfloor.state import DialogueTurn, FreeTextVerdict, Mood, SessionAnalysis, SpellingCheck


QUESTIONS_JSON = json.dumps({"questions": [
    {"q": "Is it in stock?", "options": [
        {"text": "Yes, two left", "score": 30, "feedback": "Direct"},
        {"text": "Maybe", "score": -15, "feedback": "Vague"},
        {"text": "Ask someone else", "score": -40, "feedback": "Never"},
    ]},
    {"q": "Any discounts?", "options": [
        {"text": "Bundle offer today", "score": 30, "feedback": "Value"},
    ]},
]})

SCENARIO_JSON = json.dumps({
    "product": "Dyson V15",
    "steps": [
        {"client": "Why so expensive?", "options": [
            {"text": "Laser dust detection", "score": 30, "feedback": "Specific"},
            {"text": "It's a brand", "score": 10, "feedback": "Weak"},
        ]},
    ],
})

TRANSCRIPT = [
    DialogueTurn(role="customer", text="Too pricey."),
    DialogueTurn(role="staff", text="Let me explain the warranty."),
]


def run(coro):
    return asyncio.run(coro)


class TestExtractJson:
    """Test pulling JSON out of model chatter."""

    def test_bare_object(self):
        assert extract_json_text('{"a": 1}') == '{"a": 1}'

    def test_fenced_block(self):
        raw = '```json\n{"a": 1}\n```'
        assert json.loads(extract_json_text(raw)) == {"a": 1}

    def test_surrounding_chatter(self):
        raw = 'Sure! Here it is: {"a": {"b": 2}} Hope that helps.'
        assert json.loads(extract_json_text(raw)) == {"a": {"b": 2}}

    def test_array(self):
        assert json.loads(extract_json_text("result: [1, 2]")) == [1, 2]


class TestParseModel:
    """Test validation into content models."""

    def test_valid(self):
        verdict = parse_model('{"score": 20, "feedback": "ok"}', FreeTextVerdict)
        assert verdict.score == 20

    def test_not_json_raises(self):
        with pytest.raises(ContentGenerationError):
            parse_model("no json here", FreeTextVerdict)

    def test_invalid_shape_raises_given_error(self):
        with pytest.raises(EvaluationError):
            parse_model('{"feedback": "missing score"}', FreeTextVerdict, error=EvaluationError)

    def test_external_names(self):
        check = parse_model('{"errorsFound": true, "correctedText": "Hello"}', SpellingCheck)
        assert check.errors_found is True
        assert check.corrected_text == "Hello"


class TestLLMContentProvider:
    """Test the prompt/parse loop against the mock client."""

    def test_questions(self):
        client = MockLLMClient([QUESTIONS_JSON])
        questions = run(LLMContentProvider(client).generate_choice_questions(3))

        assert [q.prompt for q in questions] == ["Is it in stock?", "Any discounts?"]
        assert questions[0].options[0].score == 30
        assert client.calls[0]["json_mode"] is True

    def test_questions_truncated_to_n(self):
        client = MockLLMClient([QUESTIONS_JSON])
        assert len(run(LLMContentProvider(client).generate_choice_questions(1))) == 1

    def test_scenario(self):
        scenario = run(LLMContentProvider(MockLLMClient([SCENARIO_JSON])).generate_scenario())
        assert scenario.product == "Dyson V15"
        assert scenario.steps[0].client_line == "Why so expensive?"

    def test_malformed_scenario_raises(self):
        provider = LLMContentProvider(MockLLMClient(['{"product": "X", "steps": []}']))
        with pytest.raises(ContentGenerationError):
            run(provider.generate_scenario())

    def test_connection_failure_becomes_generation_error(self):
        provider = LLMContentProvider(MockLLMClient([ConnectionError("refused")]))
        with pytest.raises(ContentGenerationError):
            run(provider.generate_scenario())

    def test_free_text_clamped(self):
        provider = LLMContentProvider(MockLLMClient(['{"score": 90, "feedback": "wow"}']))
        verdict = run(provider.evaluate_free_text("Q?", "A."))
        assert verdict.score == 50

    def test_free_text_failure_is_evaluation_error(self):
        provider = LLMContentProvider(MockLLMClient([RuntimeError("HTTP 500")]))
        with pytest.raises(EvaluationError):
            run(provider.evaluate_free_text("Q?", "A."))

    def test_customer_roles(self, product):
        client = MockLLMClient(["  And the warranty covers what?  "])
        reply = run(LLMContentProvider(client).simulate_customer(TRANSCRIPT, Mood.DOUBTFUL, product))

        assert reply == "And the warranty covers what?"
        call = client.calls[0]
        assert [m.role for m in call["messages"]] == ["assistant", "user"]
        assert "Test Kettle" in call["system"]
        assert "doubtful" in call["system"]
        assert call["json_mode"] is False

    def test_empty_customer_reply_raises(self, product):
        provider = LLMContentProvider(MockLLMClient(["   "]))
        with pytest.raises(ContentGenerationError):
            run(provider.simulate_customer(TRANSCRIPT, Mood.NEUTRAL, product))

    def test_dialogue_evaluation(self):
        client = MockLLMClient(['{"score": 45, "satisfactionPercent": 70, "feedback": "Solid"}'])
        analysis = run(LLMContentProvider(client).evaluate_dialogue("Context", TRANSCRIPT))
        assert analysis == SessionAnalysis(score=45, satisfaction_percent=70, feedback="Solid")
        assert "Associate: Let me explain the warranty." in client.calls[0]["messages"][0].content

    def test_dialogue_evaluation_out_of_range(self):
        client = MockLLMClient(['{"score": 45, "satisfactionPercent": 140}'])
        with pytest.raises(EvaluationError):
            run(LLMContentProvider(client).evaluate_dialogue("Context", TRANSCRIPT))

    def test_spelling(self):
        client = MockLLMClient(['{"errorsFound": false, "correctedText": "", "explanation": ""}'])
        check = run(LLMContentProvider(client).check_spelling("Hello"))
        assert check.errors_found is False


class TestOfflineProvider:
    """Test the built-in content."""

    def test_customer_lines_cycle(self, product):
        provider = OfflineContentProvider()
        lines = [run(provider.simulate_customer([], Mood.NEUTRAL, product)) for _ in range(5)]
        assert lines[:4] == list(OFFLINE_CUSTOMER_LINES)
        assert lines[4] == OFFLINE_CUSTOMER_LINES[0]

    def test_evaluation_unavailable(self):
        with pytest.raises(EvaluationError):
            run(OfflineContentProvider().evaluate_dialogue("ctx", TRANSCRIPT))

    def test_format_transcript(self):
        assert format_transcript(TRANSCRIPT) == (
            "Customer: Too pricey.\nAssociate: Let me explain the warranty."
        )
