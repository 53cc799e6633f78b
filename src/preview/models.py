"""
Typed records for the tax estimate preview.

All monetary amounts are integer cents. Models accept both snake_case
field names and the camelCase names used by the intake form and the
calculation service.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_RECORD_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


class MaritalStatus(str, Enum):
    """Marital status on December 31 of the tax year."""
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    SEPARATED = "separated"
    WIDOWED = "widowed"


class FilingStatus(str, Enum):
    """Federal filing status."""
    SINGLE = "single"
    MARRIED_JOINT = "married_joint"
    MARRIED_SEPARATE = "married_separate"
    HEAD_OF_HOUSEHOLD = "head_of_household"


class Dependent(BaseModel):
    """A dependent listed on the intake form."""
    model_config = _RECORD_CONFIG

    name: Optional[str] = None
    relationship: Optional[str] = None
    date_of_birth: Optional[date] = None


class TrackedInputSet(BaseModel):
    """
    Intake-form fields watched by the estimate preview.

    Two input sets are equal when every field is equal, which is what
    decides whether a new estimate is needed.
    """
    model_config = _RECORD_CONFIG

    has_w2_income: bool = False
    w2_job_count: int = Field(default=0, ge=0)
    has_self_employment_income: bool = False
    schedule_c_expenses: int = Field(default=0, ge=0, description="Business expenses in cents")
    has_retirement_income: bool = False
    has_social_security_income: bool = False
    has_interest_income: bool = False
    has_dividend_income: bool = False
    has_capital_gains: bool = False
    has_tuition_expenses: bool = False
    dependents: Tuple[Dependent, ...] = ()
    marital_status_dec31: Optional[MaritalStatus] = None
    maryland_county: Optional[str] = None


class VitaTaxInput(BaseModel):
    """Normalized request body for the tax calculation service."""
    model_config = _RECORD_CONFIG

    filing_status: FilingStatus = FilingStatus.SINGLE
    tax_year: int = Field(default=2024, ge=2020, le=2100)
    wages: int = Field(default=0, ge=0)
    other_income: int = Field(default=0, ge=0)
    self_employment_income: int = Field(default=0, ge=0)
    business_expenses: int = Field(default=0, ge=0)
    number_of_qualifying_children: int = Field(default=0, ge=0)
    dependents: int = Field(default=0, ge=0)
    qualified_education_expenses: int = Field(default=0, ge=0)
    number_of_students: int = Field(default=0, ge=0)
    maryland_county: str = "baltimore_city"
    maryland_resident_months: int = Field(default=12, ge=0, le=12)


class ScheduleCSummary(BaseModel):
    model_config = _RECORD_CONFIG

    gross_business_income: int
    business_expenses: int
    net_profit: int


class SelfEmploymentTaxSummary(BaseModel):
    model_config = _RECORD_CONFIG

    net_earnings: int
    se_tax: int
    deductible_portion: int


class EducationCreditSummary(BaseModel):
    model_config = _RECORD_CONFIG

    american_opportunity_credit: int
    aoc_refundable_portion: int
    lifetime_learning_credit: int = 0
    total_education_credits: int


class FederalTaxSummary(BaseModel):
    """Federal figures. A negative total_federal_tax is a refund."""
    model_config = _RECORD_CONFIG

    total_income: int
    schedule_c: Optional[ScheduleCSummary] = None
    self_employment_tax: Optional[SelfEmploymentTaxSummary] = None
    adjusted_gross_income: int
    standard_deduction: int
    taxable_income: int
    income_tax_before_credits: int
    eitc: int
    child_tax_credit: int
    education_credits: Optional[EducationCreditSummary] = None
    total_credits: int
    total_federal_tax: int


class MarylandTaxSummary(BaseModel):
    """Maryland state and county figures. A negative total is a refund."""
    model_config = _RECORD_CONFIG

    maryland_taxable_income: int
    state_tax: int
    county_tax: int
    county_name: str
    county_rate: float
    maryland_eitc: int = Field(alias="marylandEITC")
    maryland_credits: int
    total_maryland_tax: int


class EstimateResult(BaseModel):
    """A computed estimate. Immutable once produced."""
    model_config = _RECORD_CONFIG

    federal_tax: FederalTaxSummary
    maryland_tax: MarylandTaxSummary
    total_tax_liability: int
    total_refund: int
    calculation_breakdown: Tuple[str, ...] = ()
    policy_citations: Tuple[str, ...] = ()


class PreviewPhase(str, Enum):
    """Controller lifecycle phases."""
    IDLE = "idle"              # Nothing scheduled or computed yet
    DEBOUNCING = "debouncing"  # Waiting for edits to settle
    IN_FLIGHT = "in_flight"    # Waiting on the calculation service
    SETTLED = "settled"        # Last compute finished, nothing pending


@dataclass(frozen=True)
class PreviewState:
    """
    Snapshot of a preview controller, safe to hand to a renderer.

    current survives failures: a failed compute only sets error.
    """
    current: Optional[EstimateResult] = None
    error: Optional[str] = None
    last_updated: Optional[datetime] = None
    in_flight: bool = False
    phase: PreviewPhase = PreviewPhase.IDLE
    applied_sequence: int = 0

    @property
    def has_estimate(self) -> bool:
        return self.current is not None

    @property
    def is_loading(self) -> bool:
        return self.in_flight

    @property
    def is_placeholder(self) -> bool:
        """No estimate yet: render "not yet computed" rather than an error."""
        return self.current is None
