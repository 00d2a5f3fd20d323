"""Plain-language decision explanations backed by an external text model.

The generator only formats a prompt and delegates; it never scores. Any
failure of the text service is raised as ``TextGenerationError`` so the
pipeline records it as a stage failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from underwriter.core.settings import settings

logger = logging.getLogger(__name__)

EXPLANATION_GUIDELINES = (
    "Be factual and transparent",
    "Explain the key factors that influenced the decision",
    "Use plain language (not technical jargon)",
    "Comply with fair lending regulations (no discriminatory language)",
    "Keep it concise (2-3 sentences)",
    "Be empathetic but professional",
)


@dataclass(frozen=True)
class TextGenerationError(RuntimeError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class OpenAITextGenerator:
    def __init__(
        self,
        *,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        max_tokens: int = 300,
        timeout: float = 30.0,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client: AsyncOpenAI | None = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                max_completion_tokens=self.max_tokens,
            )
        except OpenAIError as exc:
            raise TextGenerationError("text_generation_failed", str(exc)) from exc
        if not response.choices:
            raise TextGenerationError("text_generation_empty", "Text service returned no choices")
        return response.choices[0].message.content or ""


@lru_cache(maxsize=1)
def get_text_generator() -> TextGenerator:
    return OpenAITextGenerator(
        model=settings.explanation_model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        max_tokens=settings.explanation_max_tokens,
        timeout=settings.explanation_timeout_seconds,
    )


def _money(value) -> str:
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    if amount == amount.to_integral_value():
        return f"${int(amount):,}"
    return f"${amount:,.2f}"


def _percent(dti_ratio: Decimal) -> str:
    if not dti_ratio.is_finite():
        return "not computable (no reported income)"
    return f"{dti_ratio * 100:.1f}%"


def build_explanation_prompt(
    *,
    full_name: str,
    loan_amount,
    annual_income,
    employment_status: str,
    employer: str,
    employment_duration: str,
    loan_purpose: str,
    credit_score: int,
    dti_ratio: Decimal,
    risk_tier: str,
    decision: str,
) -> str:
    guidelines = "\n".join(
        f"{index}. {line}" for index, line in enumerate(EXPLANATION_GUIDELINES, start=1)
    )
    return (
        "You are a loan underwriting AI system that generates compliant, human-readable "
        "explanations for loan decisions.\n\n"
        "Application Details:\n"
        f"- Applicant: {full_name}\n"
        f"- Loan Amount: {_money(loan_amount)}\n"
        f"- Annual Income: {_money(annual_income)}\n"
        f"- Employment: {employment_status} at {employer} for {employment_duration}\n"
        f"- Purpose: {loan_purpose}\n\n"
        "Credit Analysis:\n"
        f"- Credit Score: {credit_score}\n"
        f"- Debt-to-Income Ratio: {_percent(dti_ratio)}\n\n"
        "Risk Assessment:\n"
        f"- Risk Tier: {risk_tier}\n"
        f"- Decision: {decision}\n\n"
        f"Generate a clear, professional explanation for this {decision} decision. "
        "Follow these guidelines:\n"
        f"{guidelines}\n\n"
        "Format: Return ONLY the explanation text, no additional commentary."
    )


async def generate_explanation(generator: TextGenerator, prompt: str) -> str:
    text = (await generator.generate(prompt)).strip()
    if not text:
        raise TextGenerationError("text_generation_empty", "Text service returned an empty explanation")
    logger.debug("Generated explanation (%d chars)", len(text))
    return text
