"""Sequential four-stage underwriting pipeline.

One run moves an application through::

    not_started -> parsing -> scoring -> assessing -> explaining -> decided

with ``failed`` reachable from every in-progress phase. Stages never overlap
for the same application and a run is never resumed: it either decides the
application or leaves it rejected with a fixed technical-failure message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from underwriter.core import context
from underwriter.db.session import AsyncSessionLocal
from underwriter.models.agent_state import AgentState
from underwriter.models.loan_application import LoanApplication
from underwriter.schemas.agent_state import AgentName
from underwriter.schemas.audit import AuditAction
from underwriter.schemas.loan import (
    EmploymentDuration,
    EmploymentStatus,
    LoanApplicationStatus,
    LoanDecision,
)
from underwriter.services import agent_states
from underwriter.services.audit import model_snapshot, record_audit_log
from underwriter.services.explanation import (
    TextGenerator,
    build_explanation_prompt,
    generate_explanation,
    get_text_generator,
)
from underwriter.services.risk import RiskAssessment, classify_risk
from underwriter.services.scoring import CreditScoreResult, calculate_credit_score

logger = logging.getLogger(__name__)

TECHNICAL_FAILURE_EXPLANATION = "Application processing failed due to technical error."

REQUIRED_TEXT_FIELDS = ("full_name", "email", "phone", "employer", "job_title", "loan_purpose")
AMOUNT_FIELDS = ("annual_income", "monthly_debt", "loan_amount")


class PipelinePhase(str, Enum):
    NOT_STARTED = "not_started"
    PARSING = "parsing"
    SCORING = "scoring"
    ASSESSING = "assessing"
    EXPLAINING = "explaining"
    DECIDED = "decided"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[PipelinePhase, frozenset[PipelinePhase]] = {
    PipelinePhase.NOT_STARTED: frozenset({PipelinePhase.PARSING}),
    PipelinePhase.PARSING: frozenset({PipelinePhase.SCORING, PipelinePhase.FAILED}),
    PipelinePhase.SCORING: frozenset({PipelinePhase.ASSESSING, PipelinePhase.FAILED}),
    PipelinePhase.ASSESSING: frozenset({PipelinePhase.EXPLAINING, PipelinePhase.FAILED}),
    PipelinePhase.EXPLAINING: frozenset({PipelinePhase.DECIDED, PipelinePhase.FAILED}),
    PipelinePhase.DECIDED: frozenset(),
    PipelinePhase.FAILED: frozenset(),
}

STAGE_FOR_PHASE: dict[PipelinePhase, AgentName] = {
    PipelinePhase.PARSING: AgentName.DOCUMENT_PARSER,
    PipelinePhase.SCORING: AgentName.CREDIT_SCORER,
    PipelinePhase.ASSESSING: AgentName.RISK_ASSESSOR,
    PipelinePhase.EXPLAINING: AgentName.DECISION_EXPLAINER,
}


@dataclass(frozen=True)
class InvalidPhaseTransition(ValueError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class DocumentValidationError(ValueError):
    code: str
    message: str
    details: dict

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ApplicationNotFoundError(LookupError):
    application_id: str

    def __str__(self) -> str:
        return f"Loan application {self.application_id} not found"


@dataclass(frozen=True)
class ApplicationNotProcessingError(ValueError):
    application_id: str
    status: str

    def __str__(self) -> str:
        return f"Loan application {self.application_id} is {self.status}, not processing"


@dataclass
class PipelineRun:
    application_id: str
    phase: PipelinePhase = PipelinePhase.NOT_STARTED
    history: list[PipelinePhase] = field(default_factory=lambda: [PipelinePhase.NOT_STARTED])
    active_state_id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.phase]

    @property
    def active_stage(self) -> AgentName | None:
        return STAGE_FOR_PHASE.get(self.phase)

    def advance(self, target: PipelinePhase) -> None:
        if target not in ALLOWED_TRANSITIONS[self.phase]:
            raise InvalidPhaseTransition(
                "invalid_phase_transition",
                f"Cannot move pipeline from {self.phase.value} to {target.value}",
            )
        self.phase = target
        self.history.append(target)


@dataclass(frozen=True)
class ParsedApplication:
    full_name: str
    annual_income: Decimal
    monthly_debt: Decimal
    loan_amount: Decimal
    employment_duration: str
    employment_status: str

    def as_output(self) -> dict[str, Any]:
        return {
            "validated": True,
            "extracted_data": {
                "full_name": self.full_name,
                "income": str(self.annual_income),
                "monthly_debt": str(self.monthly_debt),
                "loan_amount": str(self.loan_amount),
                "employment_duration": self.employment_duration,
                "employment_status": self.employment_status,
            },
        }


@dataclass(frozen=True)
class PipelineOutcome:
    application_id: str
    phase: PipelinePhase
    decision: str
    risk_tier: str | None = None
    credit_score: int | None = None
    explanation: str | None = None
    failed_stage: str | None = None
    error: dict | None = None

    @property
    def succeeded(self) -> bool:
        return self.phase is PipelinePhase.DECIDED


def parse_documents(application: LoanApplication) -> ParsedApplication:
    missing = [
        name for name in REQUIRED_TEXT_FIELDS if not str(getattr(application, name) or "").strip()
    ]
    if missing:
        raise DocumentValidationError(
            "missing_fields", "Required application fields are missing", {"fields": missing}
        )

    amounts: dict[str, Decimal] = {}
    for name in AMOUNT_FIELDS:
        raw = getattr(application, name)
        try:
            value = raw if isinstance(raw, Decimal) else Decimal(str(raw))
        except (ArithmeticError, ValueError):
            value = None
        if value is None or not value.is_finite() or value < 0:
            raise DocumentValidationError(
                "invalid_amount", f"{name} must be a non-negative amount", {"field": name}
            )
        amounts[name] = value

    durations = {item.value for item in EmploymentDuration}
    statuses = {item.value for item in EmploymentStatus}
    if application.employment_duration not in durations:
        raise DocumentValidationError(
            "invalid_employment_duration",
            "Unknown employment duration",
            {"value": application.employment_duration},
        )
    if application.employment_status not in statuses:
        raise DocumentValidationError(
            "invalid_employment_status",
            "Unknown employment status",
            {"value": application.employment_status},
        )

    return ParsedApplication(
        full_name=application.full_name.strip(),
        employment_duration=application.employment_duration,
        employment_status=application.employment_status,
        **amounts,
    )


def score_application(parsed: ParsedApplication) -> CreditScoreResult:
    return calculate_credit_score(
        annual_income=parsed.annual_income,
        monthly_debt=parsed.monthly_debt,
        loan_amount=parsed.loan_amount,
        employment_duration=parsed.employment_duration,
        employment_status=parsed.employment_status,
    )


def assess_risk(credit: CreditScoreResult) -> RiskAssessment:
    return classify_risk(credit.credit_score, credit.dti_ratio)


async def explain_decision(
    generator: TextGenerator,
    application: LoanApplication,
    credit: CreditScoreResult,
    risk: RiskAssessment,
) -> str:
    prompt = build_explanation_prompt(
        full_name=application.full_name,
        loan_amount=application.loan_amount,
        annual_income=application.annual_income,
        employment_status=application.employment_status,
        employer=application.employer,
        employment_duration=application.employment_duration,
        loan_purpose=application.loan_purpose,
        credit_score=credit.credit_score,
        dti_ratio=credit.dti_ratio,
        risk_tier=risk.risk_tier.value,
        decision=risk.decision.value,
    )
    return await generate_explanation(generator, prompt)


class PipelineOrchestrator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        text_generator: TextGenerator | None = None,
    ) -> None:
        self.session_factory = session_factory or AsyncSessionLocal
        self._text_generator = text_generator

    @property
    def text_generator(self) -> TextGenerator:
        if self._text_generator is None:
            self._text_generator = get_text_generator()
        return self._text_generator

    async def run(self, application_id: str) -> PipelineOutcome:
        token = context.set_application_id(application_id)
        try:
            async with self.session_factory() as db:
                application = await db.get(LoanApplication, application_id)
                if application is None:
                    raise ApplicationNotFoundError(application_id)
                if application.status != LoanApplicationStatus.PROCESSING.value:
                    raise ApplicationNotProcessingError(application_id, application.status)

                run = PipelineRun(application_id=application_id)
                logger.info("Processing application %s", application_id)
                try:
                    return await self._execute(db, run, application)
                except Exception as exc:
                    return await self._fail(db, run, exc)
        finally:
            context.reset_application_id(token)

    async def _stage(
        self,
        db: AsyncSession,
        run: PipelineRun,
        phase: PipelinePhase,
        stage_input: dict[str, Any],
        work: Callable[[], Awaitable[tuple[Any, dict[str, Any]]]],
    ) -> Any:
        run.advance(phase)
        state = await agent_states.begin(db, run.application_id, STAGE_FOR_PHASE[phase], stage_input)
        run.active_state_id = state.id
        result, output = await work()
        await agent_states.complete(db, state, output)
        run.active_state_id = None
        logger.info("Stage %s completed", STAGE_FOR_PHASE[phase].value)
        return result

    async def _execute(
        self,
        db: AsyncSession,
        run: PipelineRun,
        application: LoanApplication,
    ) -> PipelineOutcome:
        snapshot = model_snapshot(application)

        async def _parse():
            parsed = parse_documents(application)
            return parsed, parsed.as_output()

        parsed: ParsedApplication = await self._stage(
            db, run, PipelinePhase.PARSING, {"application_data": snapshot}, _parse
        )

        async def _score():
            credit = score_application(parsed)
            return credit, credit.as_output()

        credit: CreditScoreResult = await self._stage(
            db,
            run,
            PipelinePhase.SCORING,
            {"extracted_data": parsed.as_output()["extracted_data"]},
            _score,
        )

        async def _assess():
            risk = assess_risk(credit)
            return risk, risk.as_output(credit_score=credit.credit_score, dti_ratio=credit.dti_ratio)

        risk: RiskAssessment = await self._stage(
            db, run, PipelinePhase.ASSESSING, {"credit_data": credit.as_output()}, _assess
        )

        async def _explain():
            text = await explain_decision(self.text_generator, application, credit, risk)
            return text, {
                "explanation": text,
                "decision": risk.decision.value,
                "risk_tier": risk.risk_tier.value,
                "credit_score": credit.credit_score,
            }

        explanation: str = await self._stage(
            db,
            run,
            PipelinePhase.EXPLAINING,
            {
                "application": snapshot,
                "credit_data": credit.as_output(),
                "risk_assessment": risk.as_output(
                    credit_score=credit.credit_score, dti_ratio=credit.dti_ratio
                ),
            },
            _explain,
        )

        application.status = risk.decision.value
        application.risk_tier = risk.risk_tier.value
        application.credit_score = credit.credit_score
        application.final_decision = risk.decision.value
        application.ai_explanation = explanation
        db.add(application)
        record_audit_log(
            db,
            action=AuditAction.DECISION_MADE,
            application_id=run.application_id,
            user_id=application.user_id,
            details={
                "decision": risk.decision.value,
                "risk_tier": risk.risk_tier.value,
                "credit_score": credit.credit_score,
            },
        )
        await db.commit()
        run.advance(PipelinePhase.DECIDED)
        logger.info("Completed application %s: %s", run.application_id, risk.decision.value)
        return PipelineOutcome(
            application_id=run.application_id,
            phase=run.phase,
            decision=risk.decision.value,
            risk_tier=risk.risk_tier.value,
            credit_score=credit.credit_score,
            explanation=explanation,
        )

    async def _fail(self, db: AsyncSession, run: PipelineRun, exc: Exception) -> PipelineOutcome:
        # Only a stage with an open agent state can be blamed.
        failed_stage = run.active_stage if run.active_state_id is not None else None
        detail = agent_states.error_detail(exc)
        logger.exception(
            "Pipeline failed for application %s during %s",
            run.application_id,
            failed_stage.value if failed_stage else run.phase.value,
        )
        if not run.is_terminal:
            run.advance(PipelinePhase.FAILED)

        # Objects are expired by the rollback and must be reloaded explicitly.
        await db.rollback()
        if run.active_state_id is not None:
            state = await db.get(AgentState, run.active_state_id, populate_existing=True)
            if state is not None:
                await agent_states.fail(db, state, exc)

        application = await db.get(LoanApplication, run.application_id, populate_existing=True)
        application.status = LoanApplicationStatus.REJECTED.value
        application.final_decision = LoanDecision.REJECTED.value
        application.ai_explanation = TECHNICAL_FAILURE_EXPLANATION
        db.add(application)
        record_audit_log(
            db,
            action=AuditAction.PROCESSING_FAILED,
            application_id=run.application_id,
            user_id=application.user_id,
            agent_name=failed_stage.value if failed_stage else None,
            details={"error": detail},
        )
        await db.commit()
        return PipelineOutcome(
            application_id=run.application_id,
            phase=PipelinePhase.FAILED,
            decision=LoanDecision.REJECTED.value,
            explanation=TECHNICAL_FAILURE_EXPLANATION,
            failed_stage=failed_stage.value if failed_stage else None,
            error=detail,
        )
