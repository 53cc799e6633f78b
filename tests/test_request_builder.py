"""Tests for building calculation requests from intake inputs."""

from datetime import date

import pytest
from pydantic import ValidationError

from preview.models import Dependent, FilingStatus, TrackedInputSet
from preview.request_builder import (
    PLACEHOLDER_EDUCATION_EXPENSES,
    PLACEHOLDER_OTHER_INCOME,
    PLACEHOLDER_SELF_EMPLOYMENT_INCOME,
    PLACEHOLDER_WAGES,
    build_tax_input,
    count_qualifying_children,
    derive_filing_status,
    has_minimum_required_data,
)


class TestFilingStatus:
    """Filing status derivation."""

    def test_married_files_jointly(self):
        inputs = TrackedInputSet(marital_status_dec31="married")
        assert derive_filing_status(inputs) == FilingStatus.MARRIED_JOINT

    def test_unmarried_with_dependents_is_head_of_household(self):
        inputs = TrackedInputSet(
            marital_status_dec31="divorced",
            dependents=[Dependent(name="Kid", date_of_birth=date(2015, 6, 1))],
        )
        assert derive_filing_status(inputs) == FilingStatus.HEAD_OF_HOUSEHOLD

    def test_default_single(self):
        inputs = TrackedInputSet(marital_status_dec31="single")
        assert derive_filing_status(inputs) == FilingStatus.SINGLE


class TestQualifyingChildren:
    """Children under 17 at year end."""

    def test_age_cutoff(self):
        dependents = [
            Dependent(date_of_birth=date(2008, 1, 1)),   # 16 on Dec 31 2024
            Dependent(date_of_birth=date(2007, 12, 31)),  # 17 on Dec 31 2024
            Dependent(date_of_birth=date(2020, 3, 15)),
        ]
        assert count_qualifying_children(dependents, 2024) == 2

    def test_missing_birth_date_does_not_qualify(self):
        assert count_qualifying_children([Dependent(name="Unknown")], 2024) == 0

    def test_born_after_tax_year(self):
        assert count_qualifying_children([Dependent(date_of_birth=date(2025, 2, 1))], 2024) == 0


class TestBuildTaxInput:
    """Normalized request body."""

    def test_placeholder_amounts(self):
        inputs = TrackedInputSet(
            marital_status_dec31="married",
            has_w2_income=True,
            w2_job_count=1,
            has_interest_income=True,
            has_self_employment_income=True,
            schedule_c_expenses=150_000,
            has_tuition_expenses=True,
            maryland_county="montgomery",
        )
        body = build_tax_input(inputs, tax_year=2024)

        assert body.filing_status == FilingStatus.MARRIED_JOINT
        assert body.wages == PLACEHOLDER_WAGES
        assert body.other_income == PLACEHOLDER_OTHER_INCOME
        assert body.self_employment_income == PLACEHOLDER_SELF_EMPLOYMENT_INCOME
        assert body.business_expenses == 150_000
        assert body.qualified_education_expenses == PLACEHOLDER_EDUCATION_EXPENSES
        assert body.number_of_students == 1
        assert body.maryland_county == "montgomery"
        assert body.maryland_resident_months == 12

    def test_w2_requires_job_count(self):
        inputs = TrackedInputSet(marital_status_dec31="single", has_w2_income=True)
        assert build_tax_input(inputs).wages == 0

    def test_default_county(self):
        inputs = TrackedInputSet(marital_status_dec31="single")
        assert build_tax_input(inputs, default_county="howard").maryland_county == "howard"

    def test_deterministic(self):
        inputs = TrackedInputSet(marital_status_dec31="single", has_dividend_income=True)
        assert build_tax_input(inputs) == build_tax_input(inputs)

    def test_dependents_counted(self):
        inputs = TrackedInputSet(
            marital_status_dec31="single",
            dependents=[
                Dependent(date_of_birth=date(2019, 5, 5)),
                Dependent(date_of_birth=date(1950, 5, 5), relationship="parent"),
            ],
        )
        body = build_tax_input(inputs, tax_year=2024)
        assert body.dependents == 2
        assert body.number_of_qualifying_children == 1

    def test_camel_case_payload(self):
        body = build_tax_input(TrackedInputSet(marital_status_dec31="married"))
        payload = body.model_dump(mode="json", by_alias=True)
        assert payload["filingStatus"] == "married_joint"
        assert payload["numberOfQualifyingChildren"] == 0


class TestMinimumRequiredData:
    """Minimum-data gate."""

    def test_marital_status_required(self):
        assert has_minimum_required_data(TrackedInputSet()) is False
        assert has_minimum_required_data(TrackedInputSet(marital_status_dec31="single")) is True

    def test_custom_required_fields(self):
        inputs = TrackedInputSet(marital_status_dec31="single")
        assert has_minimum_required_data(inputs, ("marital_status_dec31", "maryland_county")) is False

    def test_empty_dependents_not_present(self):
        inputs = TrackedInputSet(marital_status_dec31="single")
        assert has_minimum_required_data(inputs, ("dependents",)) is False


class TestTrackedInputSet:
    """Input model behavior."""

    def test_accepts_camel_case(self):
        inputs = TrackedInputSet.model_validate(
            {"maritalStatusDec31": "married", "hasW2Income": True, "w2JobCount": 2}
        )
        assert inputs.has_w2_income is True
        assert inputs.w2_job_count == 2

    def test_value_equality(self):
        a = TrackedInputSet(marital_status_dec31="married", dependents=[Dependent(name="A")])
        b = TrackedInputSet(marital_status_dec31="married", dependents=[Dependent(name="A")])
        assert a == b

    def test_rejects_invalid_marital_status(self):
        with pytest.raises(ValidationError):
            TrackedInputSet(marital_status_dec31="complicated")

    def test_frozen(self):
        inputs = TrackedInputSet(marital_status_dec31="single")
        with pytest.raises(ValidationError):
            inputs.has_w2_income = True
