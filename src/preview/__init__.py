"""Live tax estimate preview for the VITA intake form."""

from .controller import TaxPreviewController, describe_failure
from .exceptions import (
    CalculationServiceError,
    CalculationServiceUnavailable,
    MalformedEstimateError,
    TaxPreviewError,
    TransientComputeFailure,
)
from .models import (
    Dependent,
    EducationCreditSummary,
    EstimateResult,
    FederalTaxSummary,
    FilingStatus,
    MaritalStatus,
    MarylandTaxSummary,
    PreviewPhase,
    PreviewState,
    ScheduleCSummary,
    SelfEmploymentTaxSummary,
    TrackedInputSet,
    VitaTaxInput,
)
from .request_builder import build_tax_input, has_minimum_required_data

__all__ = [
    "TaxPreviewController",
    "describe_failure",
    "CalculationServiceError",
    "CalculationServiceUnavailable",
    "MalformedEstimateError",
    "TaxPreviewError",
    "TransientComputeFailure",
    "Dependent",
    "EducationCreditSummary",
    "EstimateResult",
    "FederalTaxSummary",
    "FilingStatus",
    "MaritalStatus",
    "MarylandTaxSummary",
    "PreviewPhase",
    "PreviewState",
    "ScheduleCSummary",
    "SelfEmploymentTaxSummary",
    "TrackedInputSet",
    "VitaTaxInput",
    "build_tax_input",
    "has_minimum_required_data",
]
