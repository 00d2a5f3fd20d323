from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class LoanApplicationStatus(str, Enum):
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LoanDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"


class OverrideDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class EmploymentStatus(str, Enum):
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    SELF_EMPLOYED = "self_employed"
    CONTRACT = "contract"


class EmploymentDuration(str, Enum):
    LESS_THAN_ONE_YEAR = "0-1y"
    ONE_TO_TWO_YEARS = "1-2y"
    TWO_TO_THREE_YEARS = "2-3y"
    THREE_TO_FIVE_YEARS = "3-5y"
    FIVE_PLUS_YEARS = "5+y"


class LoanPurpose(str, Enum):
    DEBT_CONSOLIDATION = "debt_consolidation"
    HOME_IMPROVEMENT = "home_improvement"
    MAJOR_PURCHASE = "major_purchase"
    MEDICAL = "medical"
    BUSINESS = "business"
    OTHER = "other"


class LoanApplicationCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True, str_strip_whitespace=True)

    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=50)
    employment_status: EmploymentStatus
    employment_duration: EmploymentDuration
    employer: str = Field(min_length=1, max_length=255)
    job_title: str = Field(min_length=1, max_length=255)
    annual_income: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    monthly_debt: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    loan_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    loan_purpose: LoanPurpose


class LoanApplicationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    full_name: str
    email: str
    phone: str
    employment_status: str
    employment_duration: str
    employer: str
    job_title: str
    annual_income: Decimal
    monthly_debt: Decimal
    loan_amount: Decimal
    loan_purpose: str
    credit_score: int | None = None
    status: LoanApplicationStatus
    risk_tier: RiskTier | None = None
    final_decision: str | None = None
    ai_explanation: str | None = None
    overridden_by: str | None = None
    override_reason: str | None = None
    overridden_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LoanApplicationListResponse(BaseModel):
    items: list[LoanApplicationDTO]
    total: int


class OverrideRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    new_decision: OverrideDecision
    override_reason: str = Field(min_length=10)

    @field_validator("override_reason")
    @classmethod
    def _reason_not_blank(cls, value: str) -> str:
        if len(value.strip()) < 10:
            raise ValueError("Override reason must be at least 10 characters")
        return value
