"""
VITA Intake Routes - Tax estimate for the intake preview sidebar.

Routes:
- POST /api/vita-intake/calculate-tax - Federal + Maryland estimate
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from preview.models import EstimateResult, VitaTaxInput
from services.estimate_service import EstimateService

from ..dependencies import get_estimate_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vita-intake", tags=["VITA Intake"])


@router.post("/calculate-tax", response_model=EstimateResult)
async def calculate_tax(
    tax_input: VitaTaxInput,
    service: EstimateService = Depends(get_estimate_service),
) -> EstimateResult:
    """
    Calculate a federal and Maryland tax estimate.

    Identical inputs are served from the policy_engine cache. Unsupported
    tax years raise UnsupportedTaxYearError, answered with 400 by the app.
    """
    return await run_in_threadpool(service.estimate, tax_input)
