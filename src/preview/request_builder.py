"""
Builds the calculation request body from intake-form inputs.

The body is derived deterministically: the same TrackedInputSet always
produces the same VitaTaxInput.
"""

from datetime import date
from typing import Iterable, Sequence

from .models import Dependent, FilingStatus, MaritalStatus, TrackedInputSet, VitaTaxInput

CHILD_TAX_CREDIT_AGE_LIMIT = 17

# Placeholder amounts (cents) used until the intake form collects dollar figures
PLACEHOLDER_WAGES = 3_000_000
PLACEHOLDER_OTHER_INCOME = 50_000
PLACEHOLDER_SELF_EMPLOYMENT_INCOME = 2_000_000
PLACEHOLDER_EDUCATION_EXPENSES = 400_000


def derive_filing_status(inputs: TrackedInputSet) -> FilingStatus:
    """Married filers file jointly; unmarried filers with dependents file as head of household."""
    if inputs.marital_status_dec31 == MaritalStatus.MARRIED:
        return FilingStatus.MARRIED_JOINT
    if inputs.dependents:
        return FilingStatus.HEAD_OF_HOUSEHOLD
    return FilingStatus.SINGLE


def count_qualifying_children(dependents: Iterable[Dependent], tax_year: int) -> int:
    """
    Count dependents under 17 on December 31 of the tax year.

    Dependents without a date of birth do not qualify.
    """
    year_end = date(tax_year, 12, 31)
    count = 0
    for dependent in dependents:
        dob = dependent.date_of_birth
        if dob is None or dob > year_end:
            continue
        # Every birthday in the year has passed by Dec 31
        if year_end.year - dob.year < CHILD_TAX_CREDIT_AGE_LIMIT:
            count += 1
    return count


def build_tax_input(
    inputs: TrackedInputSet,
    tax_year: int = 2024,
    default_county: str = "baltimore_city",
) -> VitaTaxInput:
    """
    Normalize intake inputs into a calculation request.

    Args:
        inputs: Current intake-form inputs
        tax_year: Tax year being prepared
        default_county: County used when the form has none

    Returns:
        VitaTaxInput ready to send to the calculation service
    """
    has_wages = inputs.has_w2_income and inputs.w2_job_count > 0
    has_other = inputs.has_interest_income or inputs.has_dividend_income

    return VitaTaxInput(
        filing_status=derive_filing_status(inputs),
        tax_year=tax_year,
        wages=PLACEHOLDER_WAGES if has_wages else 0,
        other_income=PLACEHOLDER_OTHER_INCOME if has_other else 0,
        self_employment_income=(
            PLACEHOLDER_SELF_EMPLOYMENT_INCOME if inputs.has_self_employment_income else 0
        ),
        business_expenses=inputs.schedule_c_expenses,
        number_of_qualifying_children=count_qualifying_children(inputs.dependents, tax_year),
        dependents=len(inputs.dependents),
        qualified_education_expenses=(
            PLACEHOLDER_EDUCATION_EXPENSES if inputs.has_tuition_expenses else 0
        ),
        number_of_students=1 if inputs.has_tuition_expenses else 0,
        maryland_county=inputs.maryland_county or default_county,
        maryland_resident_months=12,
    )


def has_minimum_required_data(
    inputs: TrackedInputSet,
    required_fields: Sequence[str] = ("marital_status_dec31",),
) -> bool:
    """True when every required field is present and non-empty."""
    for field_name in required_fields:
        value = getattr(inputs, field_name, None)
        if value is None or value == "" or value == ():
            return False
    return True
