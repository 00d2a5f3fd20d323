from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from underwriter.schemas.loan import LoanDecision, RiskTier

# Policy thresholds. Existing decisions depend on these exact values.
LOW_RISK_MIN_SCORE = 750
LOW_RISK_MAX_DTI = Decimal("0.35")
HIGH_RISK_MAX_SCORE = 550
HIGH_RISK_MIN_DTI = Decimal("0.5")

POLICY_LABELS = {
    LoanDecision.APPROVED: "Auto-approve policy",
    LoanDecision.REJECTED: "Auto-reject policy",
    LoanDecision.ESCALATED: "Escalate policy",
}


@dataclass(frozen=True)
class RiskAssessment:
    risk_tier: RiskTier
    decision: LoanDecision

    @property
    def policy_applied(self) -> str:
        return POLICY_LABELS[self.decision]

    def as_output(self, *, credit_score: int, dti_ratio: Decimal) -> dict[str, Any]:
        return {
            "risk_tier": self.risk_tier.value,
            "decision": self.decision.value,
            "reasoning": {
                "credit_score": credit_score,
                "dti_ratio": str(dti_ratio),
                "policy_applied": self.policy_applied,
            },
        }


def classify_risk(credit_score: int, dti_ratio) -> RiskAssessment:
    """Map a score and DTI to a risk tier and provisional decision.

    Rules are evaluated in order and the first match wins.
    """
    dti = dti_ratio if isinstance(dti_ratio, Decimal) else Decimal(str(dti_ratio))
    if credit_score >= LOW_RISK_MIN_SCORE and dti < LOW_RISK_MAX_DTI:
        return RiskAssessment(RiskTier.LOW, LoanDecision.APPROVED)
    if credit_score <= HIGH_RISK_MAX_SCORE or dti > HIGH_RISK_MIN_DTI:
        return RiskAssessment(RiskTier.HIGH, LoanDecision.REJECTED)
    return RiskAssessment(RiskTier.MEDIUM, LoanDecision.ESCALATED)
