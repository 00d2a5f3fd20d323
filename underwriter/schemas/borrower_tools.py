from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from underwriter.schemas.loan import (
    EmploymentDuration,
    EmploymentStatus,
    LoanPurpose,
    RiskTier,
)


class LoanSimulationRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    annual_income: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    monthly_debt: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    loan_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    employment_duration: EmploymentDuration
    employment_status: EmploymentStatus


class LoanSimulationResult(BaseModel):
    approval_chance: int
    risk_tier: RiskTier
    estimated_emi: int
    credit_score: int
    dti_ratio: Decimal | None = None
    recommendation: str


class HealthScoreRequest(BaseModel):
    """Partially filled application form; every field is optional."""

    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)

    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    employment_status: EmploymentStatus | None = None
    employment_duration: EmploymentDuration | None = None
    employer: str | None = None
    job_title: str | None = None
    annual_income: Decimal | None = Field(default=None, ge=0)
    monthly_debt: Decimal | None = Field(default=None, ge=0)
    loan_amount: Decimal | None = Field(default=None, ge=0)
    loan_purpose: LoanPurpose | None = None


class HealthScoreFactor(BaseModel):
    category: str
    impact: int
    suggestion: str


class HealthScoreResult(BaseModel):
    score: int
    max_score: int
    factors: list[HealthScoreFactor]
    missing_documents: list[str]


class TipCategory(str, Enum):
    INCOME = "income"
    DEBT = "debt"
    EMPLOYMENT = "employment"
    DOCUMENTS = "documents"
    GENERAL = "general"


class TipImpact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PersonalizedTipsRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    annual_income: Decimal | None = Field(default=None, ge=0)
    monthly_debt: Decimal | None = Field(default=None, ge=0)
    loan_amount: Decimal | None = Field(default=None, ge=0)
    employment_duration: EmploymentDuration | None = None
    employment_status: EmploymentStatus | None = None


class PersonalizedTip(BaseModel):
    id: str
    category: TipCategory
    title: str
    description: str
    impact: TipImpact
