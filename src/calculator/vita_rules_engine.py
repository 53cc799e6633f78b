"""
VITA Tax Rules Engine (Volunteer Income Tax Assistance)

Estimates federal and Maryland state tax for low-to-moderate income
households. This is the calculation service behind the intake preview.

Federal components:
- Schedule C net profit and self-employment tax
- Standard deduction and progressive brackets (10% - 37%)
- EITC (simplified: proportional phase-in, then the maximum credit)
- Child Tax Credit, $2,000 per child, up to $1,700 refundable (ACTC)
- American Opportunity Credit, 40% refundable

Maryland components:
- Progressive state brackets (2% - 5.75%)
- County tax (23 counties and Baltimore City, 2.25% - 3.20%)
- Maryland EITC (50% of federal)

Policy references:
- IRS Publication 17, 596, 970 and 972
- Maryland Form 502 Instructions
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from preview.models import (
    EducationCreditSummary,
    EstimateResult,
    FederalTaxSummary,
    FilingStatus,
    MarylandTaxSummary,
    ScheduleCSummary,
    SelfEmploymentTaxSummary,
    VitaTaxInput,
)

from .decimal_math import Bracket, apply_rate, format_dollars, progressive_tax, round_cents

logger = logging.getLogger(__name__)

SUPPORTED_TAX_YEARS = (2024,)

STANDARD_DEDUCTION: Dict[FilingStatus, int] = {
    FilingStatus.SINGLE: 1_460_000,
    FilingStatus.MARRIED_JOINT: 2_920_000,
    FilingStatus.MARRIED_SEPARATE: 1_460_000,
    FilingStatus.HEAD_OF_HOUSEHOLD: 2_190_000,
}

_RATES = [Decimal(r) for r in ("0.10", "0.12", "0.22", "0.24", "0.32", "0.35", "0.37")]


def _brackets(*bounds: int) -> List[Bracket]:
    return list(zip(list(bounds) + [None], _RATES))


FEDERAL_BRACKETS: Dict[FilingStatus, List[Bracket]] = {
    FilingStatus.SINGLE: _brackets(
        1_160_000, 4_715_000, 10_052_500, 19_195_000, 24_372_500, 60_935_000),
    FilingStatus.MARRIED_JOINT: _brackets(
        2_320_000, 9_430_000, 20_105_000, 38_390_000, 48_745_000, 73_120_000),
    FilingStatus.MARRIED_SEPARATE: _brackets(
        1_160_000, 4_715_000, 10_052_500, 19_195_000, 24_372_500, 36_560_000),
    FilingStatus.HEAD_OF_HOUSEHOLD: _brackets(
        1_655_000, 6_310_000, 10_050_000, 19_195_000, 24_370_000, 60_935_000),
}


@dataclass(frozen=True)
class EitcLimits:
    income_limit: int
    max_credit: int


# Phase-out end points (where EITC reaches $0) and maximum credit by children (3 = 3+)
EITC_TABLE: Dict[int, EitcLimits] = {
    0: EitcLimits(income_limit=1_835_000, max_credit=63_200),
    1: EitcLimits(income_limit=4_852_500, max_credit=422_400),
    2: EitcLimits(income_limit=5_532_500, max_credit=698_800),
    3: EitcLimits(income_limit=5_532_500, max_credit=786_300),
}

CTC_PER_CHILD = 200_000
ACTC_REFUNDABLE_PER_CHILD = 170_000
CTC_PHASE_OUT_STEP = 100_000      # every $1,000 (or part) over the threshold
CTC_PHASE_OUT_REDUCTION = 5_000   # reduces the credit by $50

SE_EARNINGS_FACTOR = Decimal("0.9235")
SE_SOCIAL_SECURITY_RATE = Decimal("0.124")
SE_MEDICARE_RATE = Decimal("0.029")
SE_MINIMUM_EARNINGS = 40_000
SOCIAL_SECURITY_WAGE_BASE = 16_860_000

AOC_FULL_TIER = 200_000
AOC_PARTIAL_TIER = 200_000
AOC_PARTIAL_RATE = Decimal("0.25")
AOC_REFUNDABLE_RATE = Decimal("0.40")
# (phase-out start, phase-out end) of modified AGI
AOC_PHASE_OUT: Dict[FilingStatus, Tuple[int, int]] = {
    FilingStatus.SINGLE: (8_000_000, 9_000_000),
    FilingStatus.HEAD_OF_HOUSEHOLD: (8_000_000, 9_000_000),
    FilingStatus.MARRIED_JOINT: (16_000_000, 18_000_000),
}

MARYLAND_BRACKETS: List[Bracket] = [
    (100_000, Decimal("0.02")),
    (200_000, Decimal("0.03")),
    (300_000, Decimal("0.04")),
    (10_000_000, Decimal("0.0475")),
    (12_500_000, Decimal("0.05")),
    (15_000_000, Decimal("0.0525")),
    (25_000_000, Decimal("0.055")),
    (None, Decimal("0.0575")),
]

MARYLAND_EITC_RATE = Decimal("0.50")


@dataclass(frozen=True)
class County:
    name: str
    rate: Decimal  # percent


MARYLAND_COUNTIES: Dict[str, County] = {
    "allegany": County("Allegany", Decimal("3.05")),
    "anne_arundel": County("Anne Arundel", Decimal("2.81")),
    "baltimore_city": County("Baltimore City", Decimal("3.20")),
    "baltimore_county": County("Baltimore County", Decimal("3.20")),
    "calvert": County("Calvert", Decimal("3.00")),
    "caroline": County("Caroline", Decimal("3.15")),
    "carroll": County("Carroll", Decimal("3.00")),
    "cecil": County("Cecil", Decimal("2.75")),
    "charles": County("Charles", Decimal("2.96")),
    "dorchester": County("Dorchester", Decimal("3.20")),
    "frederick": County("Frederick", Decimal("2.96")),
    "garrett": County("Garrett", Decimal("2.85")),
    "harford": County("Harford", Decimal("3.05")),
    "howard": County("Howard", Decimal("3.20")),
    "kent": County("Kent", Decimal("3.20")),
    "montgomery": County("Montgomery", Decimal("3.20")),
    "prince_georges": County("Prince George's", Decimal("3.20")),
    "queen_annes": County("Queen Anne's", Decimal("2.70")),
    "somerset": County("Somerset", Decimal("3.15")),
    "st_marys": County("St. Mary's", Decimal("3.00")),
    "talbot": County("Talbot", Decimal("2.25")),
    "washington": County("Washington", Decimal("2.95")),
    "wicomico": County("Wicomico", Decimal("3.20")),
    "worcester": County("Worcester", Decimal("2.50")),
}

# Unknown counties are taxed at the highest local rate
UNKNOWN_COUNTY = County("Unknown", Decimal("3.20"))


class UnsupportedTaxYearError(ValueError):
    """Raised for tax years without configured tables."""

    def __init__(self, tax_year: int):
        super().__init__(f"Tax year {tax_year} is not supported")
        self.tax_year = tax_year


@dataclass
class _Trace:
    """Breakdown lines and citations collected during one calculation."""
    breakdown: List[str]
    citations: List[str]

    def line(self, text: str) -> None:
        self.breakdown.append(text)

    def cite(self, text: str) -> None:
        self.citations.append(text)


@dataclass(frozen=True)
class _SelfEmployment:
    schedule_c: Optional[ScheduleCSummary]
    se_tax: Optional[SelfEmploymentTaxSummary]

    @property
    def net_profit(self) -> int:
        return self.schedule_c.net_profit if self.schedule_c else 0

    @property
    def tax(self) -> int:
        return self.se_tax.se_tax if self.se_tax else 0

    @property
    def deductible(self) -> int:
        return self.se_tax.deductible_portion if self.se_tax else 0


def get_county(county: str) -> County:
    """Look up a Maryland county by its snake_case code."""
    return MARYLAND_COUNTIES.get(county, UNKNOWN_COUNTY)


class VitaTaxRulesEngine:
    """Federal + Maryland estimate for VITA-eligible taxpayers."""

    def calculate(self, tax_input: VitaTaxInput) -> EstimateResult:
        """
        Calculate federal and Maryland tax.

        Args:
            tax_input: Normalized household input (amounts in cents)

        Returns:
            EstimateResult with breakdown lines and policy citations

        Raises:
            UnsupportedTaxYearError: No tables for the requested tax year
        """
        if tax_input.tax_year not in SUPPORTED_TAX_YEARS:
            raise UnsupportedTaxYearError(tax_input.tax_year)

        trace = _Trace(breakdown=[], citations=[])
        trace.line(f"VITA Tax Calculation for Tax Year {tax_input.tax_year}")
        trace.line(f"Filing Status: {tax_input.filing_status.value.replace('_', ' ')}")
        trace.line(f"Maryland County: {tax_input.maryland_county.replace('_', ' ')}")

        federal = self._federal(tax_input, trace)
        maryland = self._maryland(tax_input, federal, trace)

        total_tax_liability = federal.total_federal_tax + maryland.total_maryland_tax
        total_refund = -total_tax_liability if total_tax_liability < 0 else 0

        trace.line("=== TAX SUMMARY ===")
        trace.line(f"Federal Tax: {format_dollars(federal.total_federal_tax)}")
        trace.line(f"Maryland Tax: {format_dollars(maryland.total_maryland_tax)}")
        trace.line(f"Total Tax Liability: {format_dollars(total_tax_liability)}")
        if total_refund > 0:
            trace.line(f"TOTAL REFUND: {format_dollars(total_refund)}")

        logger.debug(
            f"VITA estimate computed: status={tax_input.filing_status.value} "
            f"liability={total_tax_liability}"
        )

        return EstimateResult(
            federal_tax=federal,
            maryland_tax=maryland,
            total_tax_liability=total_tax_liability,
            total_refund=total_refund,
            calculation_breakdown=tuple(trace.breakdown),
            policy_citations=tuple(trace.citations),
        )

    # Federal

    def _federal(self, tax_input: VitaTaxInput, trace: _Trace) -> FederalTaxSummary:
        trace.line("--- FEDERAL TAX CALCULATION ---")
        status = tax_input.filing_status

        se = self.self_employment(tax_input)
        if se.schedule_c:
            trace.line(f"Schedule C Net Profit: {format_dollars(se.net_profit)}")
            trace.cite("IRS Schedule C - Profit or Loss From Business")
        if se.se_tax:
            trace.line(f"Self-Employment Tax: {format_dollars(se.tax)}")
            trace.cite("26 U.S.C. § 1401 - Self-Employment Tax")

        total_income = tax_input.wages + tax_input.other_income + se.net_profit
        agi = max(0, total_income - se.deductible)
        trace.line(f"Wages: {format_dollars(tax_input.wages)}")
        if tax_input.other_income > 0:
            trace.line(f"Other Income: {format_dollars(tax_input.other_income)}")
        trace.line(f"Adjusted Gross Income (AGI): {format_dollars(agi)}")

        standard_deduction = STANDARD_DEDUCTION[status]
        trace.line(f"Standard Deduction: {format_dollars(standard_deduction)}")
        trace.cite(f"IRS Publication 17 - Standard Deduction for {status.value}")

        taxable_income = max(0, agi - standard_deduction)
        trace.line(f"Taxable Income: {format_dollars(taxable_income)}")

        income_tax = progressive_tax(taxable_income, FEDERAL_BRACKETS[status])
        trace.line(f"Income Tax (before credits): {format_dollars(income_tax)}")
        trace.cite("26 U.S.C. § 1 - Federal Tax Brackets")

        children = tax_input.number_of_qualifying_children
        earned_income = tax_input.wages + max(0, se.net_profit - se.deductible)
        eitc = self.eitc(earned_income, agi, children)
        trace.line(f"Earned Income Tax Credit (EITC): {format_dollars(eitc)}")
        trace.cite("26 U.S.C. § 32 - Earned Income Tax Credit")
        trace.cite(f"IRS Publication 596 - EITC for {children} qualifying children")

        # Non-refundable credits reduce tax to zero, in CTC then AOC order
        total_ctc, max_refundable = self.child_tax_credit(agi, status, children)
        nonrefundable_ctc = min(total_ctc, income_tax)
        refundable_ctc = min(total_ctc - nonrefundable_ctc, max_refundable)
        child_tax_credit = nonrefundable_ctc + refundable_ctc
        remaining_tax = income_tax - nonrefundable_ctc

        trace.line(f"Child Tax Credit (CTC): {format_dollars(child_tax_credit)}")
        if refundable_ctc > 0:
            trace.line(f"  Non-refundable: {format_dollars(nonrefundable_ctc)} (offsets tax)")
            trace.line(f"  Refundable (ACTC): {format_dollars(refundable_ctc)} (max $1,700/child)")
        if children:
            trace.cite("26 U.S.C. § 24 - Child Tax Credit ($2,000 per qualifying child)")
            trace.cite("26 U.S.C. § 24(h) - Additional Child Tax Credit (refundable up to $1,700/child)")

        education = self.education_credits(tax_input, agi)
        education_applied = 0
        aoc_refundable = 0
        if education:
            aoc_refundable = education.aoc_refundable_portion
            nonrefundable_aoc = min(
                education.american_opportunity_credit - aoc_refundable, remaining_tax
            )
            remaining_tax -= nonrefundable_aoc
            education_applied = nonrefundable_aoc + aoc_refundable
            trace.line(
                f"American Opportunity Credit: {format_dollars(education_applied)} "
                f"({format_dollars(aoc_refundable)} refundable)"
            )
            trace.cite("26 U.S.C. § 25A - American Opportunity Tax Credit")
            trace.cite("IRS Publication 970 - Tax Benefits for Education")

        total_credits = eitc + child_tax_credit + education_applied
        total_federal_tax = remaining_tax + se.tax - (eitc + refundable_ctc + aoc_refundable)

        trace.line(f"Total Credits: {format_dollars(total_credits)}")
        trace.line(f"Federal Tax (after credits): {format_dollars(total_federal_tax)}")

        return FederalTaxSummary(
            total_income=total_income,
            schedule_c=se.schedule_c,
            self_employment_tax=se.se_tax,
            adjusted_gross_income=agi,
            standard_deduction=standard_deduction,
            taxable_income=taxable_income,
            income_tax_before_credits=income_tax,
            eitc=eitc,
            child_tax_credit=child_tax_credit,
            education_credits=education,
            total_credits=total_credits,
            total_federal_tax=total_federal_tax,
        )

    def self_employment(self, tax_input: VitaTaxInput) -> _SelfEmployment:
        """Schedule C profit and self-employment tax."""
        gross = tax_input.self_employment_income
        expenses = tax_input.business_expenses
        if gross == 0 and expenses == 0:
            return _SelfEmployment(schedule_c=None, se_tax=None)

        schedule_c = ScheduleCSummary(
            gross_business_income=gross,
            business_expenses=expenses,
            net_profit=gross - expenses,
        )

        net_earnings = apply_rate(max(0, schedule_c.net_profit), SE_EARNINGS_FACTOR)
        if net_earnings < SE_MINIMUM_EARNINGS:
            return _SelfEmployment(schedule_c=schedule_c, se_tax=None)

        social_security_base = max(0, SOCIAL_SECURITY_WAGE_BASE - tax_input.wages)
        se_tax = (
            apply_rate(min(net_earnings, social_security_base), SE_SOCIAL_SECURITY_RATE)
            + apply_rate(net_earnings, SE_MEDICARE_RATE)
        )
        return _SelfEmployment(
            schedule_c=schedule_c,
            se_tax=SelfEmploymentTaxSummary(
                net_earnings=net_earnings,
                se_tax=se_tax,
                deductible_portion=round_cents(Decimal(se_tax) / 2),
            ),
        )

    def eitc(self, earned_income: int, agi: int, qualifying_children: int) -> int:
        """
        Simplified EITC: proportional credit up to half the income limit,
        the maximum credit above that, nothing beyond the limit.
        """
        limits = EITC_TABLE[min(qualifying_children, 3)]
        if earned_income <= 0:
            return 0
        if earned_income > limits.income_limit or agi > limits.income_limit:
            return 0

        phase_in_end = Decimal(limits.income_limit) / 2
        if earned_income <= phase_in_end:
            return round_cents(Decimal(earned_income) / phase_in_end * limits.max_credit)
        return limits.max_credit

    def child_tax_credit(
        self,
        agi: int,
        filing_status: FilingStatus,
        qualifying_children: int,
    ) -> Tuple[int, int]:
        """
        Child Tax Credit before refundability limits.

        Returns:
            (total credit, maximum refundable ACTC)
        """
        threshold = 40_000_000 if filing_status == FilingStatus.MARRIED_JOINT else 20_000_000
        full_credit = qualifying_children * CTC_PER_CHILD

        if agi <= threshold:
            total = full_credit
        else:
            steps = -(-(agi - threshold) // CTC_PHASE_OUT_STEP)  # ceiling division
            total = max(0, full_credit - steps * CTC_PHASE_OUT_REDUCTION)

        return total, qualifying_children * ACTC_REFUNDABLE_PER_CHILD

    def education_credits(
        self,
        tax_input: VitaTaxInput,
        agi: int,
    ) -> Optional[EducationCreditSummary]:
        """American Opportunity Credit per student, after the income phase-out."""
        students = tax_input.number_of_students
        expenses = tax_input.qualified_education_expenses
        if students == 0 or expenses == 0:
            return None

        phase_out = AOC_PHASE_OUT.get(tax_input.filing_status)
        if phase_out is None:
            # Married filing separately cannot claim education credits
            return None

        per_student = Decimal(expenses) / students
        credit_per_student = (
            min(per_student, AOC_FULL_TIER)
            + min(max(per_student - AOC_FULL_TIER, 0), AOC_PARTIAL_TIER) * AOC_PARTIAL_RATE
        )
        credit = Decimal(credit_per_student) * students

        start, end = phase_out
        if agi >= end:
            credit = Decimal(0)
        elif agi > start:
            credit = credit * (Decimal(end - agi) / Decimal(end - start))

        aoc = round_cents(credit)
        refundable = apply_rate(aoc, AOC_REFUNDABLE_RATE)
        return EducationCreditSummary(
            american_opportunity_credit=aoc,
            aoc_refundable_portion=refundable,
            lifetime_learning_credit=0,
            total_education_credits=aoc,
        )

    # Maryland

    def _maryland(
        self,
        tax_input: VitaTaxInput,
        federal: FederalTaxSummary,
        trace: _Trace,
    ) -> MarylandTaxSummary:
        trace.line("--- MARYLAND STATE TAX CALCULATION ---")

        taxable = federal.adjusted_gross_income
        months = tax_input.maryland_resident_months
        if months < 12:
            taxable = round_cents(Decimal(taxable) * months / 12)
            trace.line(f"Part-year resident: {months} of 12 months")
        trace.line(f"Maryland Taxable Income: {format_dollars(taxable)}")

        state_tax = progressive_tax(taxable, MARYLAND_BRACKETS)
        trace.line(f"Maryland State Tax: {format_dollars(state_tax)}")
        trace.cite("Maryland Tax Code § 10-105 - State Tax Rates (2%-5.75%)")

        county = get_county(tax_input.maryland_county)
        if county is UNKNOWN_COUNTY:
            logger.warning(f"Unknown Maryland county '{tax_input.maryland_county}', using highest rate")
        county_tax = apply_rate(taxable, county.rate / 100)
        trace.line(f"{county.name} County Tax Rate: {county.rate:.2f}%")
        trace.line(f"{county.name} County Tax: {format_dollars(county_tax)}")
        trace.cite("Maryland Tax Code § 10-103 - County Tax Rates")

        maryland_eitc = apply_rate(federal.eitc, MARYLAND_EITC_RATE)
        trace.line(f"Maryland EITC (50% of federal): {format_dollars(maryland_eitc)}")
        trace.cite("Maryland Tax Code § 10-704 - Maryland EITC (50% of federal)")

        total = state_tax + county_tax - maryland_eitc
        trace.line(f"Total Maryland Tax (after credits): {format_dollars(total)}")

        return MarylandTaxSummary(
            maryland_taxable_income=taxable,
            state_tax=state_tax,
            county_tax=county_tax,
            county_name=county.name,
            county_rate=float(county.rate),
            maryland_eitc=maryland_eitc,
            maryland_credits=maryland_eitc,
            total_maryland_tax=total,
        )
