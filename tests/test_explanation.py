from decimal import Decimal
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from underwriter.services.explanation import (
    EXPLANATION_GUIDELINES,
    OpenAITextGenerator,
    TextGenerationError,
    build_explanation_prompt,
    generate_explanation,
)

from conftest import StubTextGenerator


def _prompt(**overrides) -> str:
    params = {
        "full_name": "Jordan Lee",
        "loan_amount": Decimal("20000.00"),
        "annual_income": Decimal("120000.00"),
        "employment_status": "full_time",
        "employer": "Acme Corp",
        "employment_duration": "5+y",
        "loan_purpose": "home_improvement",
        "credit_score": 850,
        "dti_ratio": Decimal("0.066"),
        "risk_tier": "low",
        "decision": "approved",
    }
    params.update(overrides)
    return build_explanation_prompt(**params)


class _FakeCompletions:
    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _generator_with(completions: _FakeCompletions) -> OpenAITextGenerator:
    generator = OpenAITextGenerator(model="test-model", api_key="sk-test", max_tokens=123)
    generator._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return generator


def test_prompt_contains_application_facts():
    prompt = _prompt()
    assert "- Applicant: Jordan Lee" in prompt
    assert "- Loan Amount: $20,000" in prompt
    assert "- Annual Income: $120,000" in prompt
    assert "- Employment: full_time at Acme Corp for 5+y" in prompt
    assert "- Credit Score: 850" in prompt
    assert "- Debt-to-Income Ratio: 6.6%" in prompt
    assert "- Risk Tier: low" in prompt
    assert "explanation for this approved decision" in prompt
    for index, line in enumerate(EXPLANATION_GUIDELINES, start=1):
        assert f"{index}. {line}" in prompt


def test_prompt_keeps_cents_and_handles_missing_income():
    prompt = _prompt(loan_amount=Decimal("1500.50"), dti_ratio=Decimal("Infinity"))
    assert "- Loan Amount: $1,500.50" in prompt
    assert "not computable (no reported income)" in prompt


@pytest.mark.asyncio
async def test_generate_explanation_strips_text():
    generator = StubTextGenerator(text="  Approved on strong income.\n")
    assert await generate_explanation(generator, "prompt") == "Approved on strong income."
    assert generator.prompts == ["prompt"]


@pytest.mark.asyncio
async def test_generate_explanation_rejects_blank_text():
    with pytest.raises(TextGenerationError) as exc_info:
        await generate_explanation(StubTextGenerator(text="   "), "prompt")
    assert exc_info.value.code == "text_generation_empty"


@pytest.mark.asyncio
async def test_openai_generator_sends_single_user_message():
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Approved."))]
    )
    completions = _FakeCompletions(response=response)
    text = await _generator_with(completions).generate("hello")
    assert text == "Approved."
    assert completions.calls == [
        {
            "model": "test-model",
            "messages": [{"role": "user", "content": "hello"}],
            "max_completion_tokens": 123,
        }
    ]


@pytest.mark.asyncio
async def test_openai_generator_wraps_client_errors():
    completions = _FakeCompletions(error=OpenAIError("upstream down"))
    with pytest.raises(TextGenerationError) as exc_info:
        await _generator_with(completions).generate("hello")
    assert exc_info.value.code == "text_generation_failed"
    assert "upstream down" in str(exc_info.value)


@pytest.mark.asyncio
async def test_openai_generator_rejects_empty_choices():
    completions = _FakeCompletions(response=SimpleNamespace(choices=[]))
    with pytest.raises(TextGenerationError) as exc_info:
        await _generator_with(completions).generate("hello")
    assert exc_info.value.code == "text_generation_empty"
