"""
Debounced Tax Estimate Preview Controller.

Turns a high-frequency stream of intake-form edits into a low-frequency
stream of calls to the (expensive) tax calculation service, and keeps the
best known estimate on screen while doing so.

State machine:
    IDLE -> DEBOUNCING: update_inputs() with changed inputs
    DEBOUNCING -> DEBOUNCING: another update_inputs() restarts the timer
    DEBOUNCING -> IN_FLIGHT: timer elapsed and minimum data present
    IN_FLIGHT -> SETTLED: response applied (or discarded as stale)

Every compute gets a sequence number. A response is applied only if no
response with a higher sequence number has been applied already, so a
slow earlier call can never overwrite a faster later one. Failures set
the error but never clear the current estimate, and are not retried.

Usage:
    controller = TaxPreviewController(client.calculate, debounce_seconds=0.5)
    controller.update_inputs({"maritalStatusDec31": "married"})
    await controller.wait_until_settled()
    state = controller.get_state()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Set, Union

from pydantic import ValidationError

from config.settings import PreviewSettings
from services.logging_config import EstimateLogger

from .exceptions import MalformedEstimateError, TransientComputeFailure
from .models import EstimateResult, PreviewPhase, PreviewState, TrackedInputSet, VitaTaxInput
from .request_builder import build_tax_input, has_minimum_required_data

logger = logging.getLogger(__name__)

EstimateCalculator = Callable[[VitaTaxInput], Awaitable[Any]]

DEFAULT_ERROR_MESSAGE = "Failed to calculate tax"


def describe_failure(exc: BaseException) -> str:
    """Human-readable failure text for the preview banner."""
    if isinstance(exc, TransientComputeFailure):
        return exc.message or DEFAULT_ERROR_MESSAGE
    text = str(exc)
    return f"{DEFAULT_ERROR_MESSAGE}: {text}" if text else DEFAULT_ERROR_MESSAGE


class TaxPreviewController:
    """
    Maintains a live tax estimate for one intake session.

    One controller owns one PreviewState; it must not be shared between
    sessions. All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        calculate: EstimateCalculator,
        debounce_seconds: float = 0.5,
        required_fields: Sequence[str] = ("marital_status_dec31",),
        tax_year: int = 2024,
        default_county: str = "baltimore_city",
        preview_id: Optional[str] = None,
    ):
        """
        Initialize the controller.

        Args:
            calculate: Async collaborator taking a VitaTaxInput and returning an estimate
            debounce_seconds: Quiet period after the last edit before computing
            required_fields: Input fields that must be set before computing
            tax_year: Tax year passed to the calculation service
            default_county: County used when the form has none
            preview_id: Identifier used to correlate log lines
        """
        self._calculate = calculate
        self._debounce_seconds = debounce_seconds
        self._required_fields = tuple(required_fields)
        self._tax_year = tax_year
        self._default_county = default_county
        self._log = EstimateLogger(preview_id)

        self._inputs: Optional[TrackedInputSet] = None
        self._current: Optional[EstimateResult] = None
        self._error: Optional[str] = None
        self._last_updated: Optional[datetime] = None

        self._debounce_task: Optional[asyncio.Task] = None
        self._scheduled: Set[asyncio.Task] = set()
        self._pending: Set[int] = set()
        self._next_sequence = 0
        self._applied_sequence = 0
        self._recompute_count = 0

    @classmethod
    def from_settings(
        cls,
        calculate: EstimateCalculator,
        settings: Optional[PreviewSettings] = None,
        preview_id: Optional[str] = None,
    ) -> "TaxPreviewController":
        """Create a controller configured from PreviewSettings."""
        settings = settings or PreviewSettings()
        return cls(
            calculate,
            debounce_seconds=settings.debounce_seconds,
            required_fields=settings.required_fields,
            tax_year=settings.tax_year,
            default_county=settings.default_county,
            preview_id=preview_id,
        )

    @property
    def inputs(self) -> Optional[TrackedInputSet]:
        return self._inputs

    @property
    def recompute_count(self) -> int:
        """Number of calls issued to the calculation service."""
        return self._recompute_count

    # Input tracking

    def update_inputs(self, new_inputs: Union[TrackedInputSet, Mapping[str, Any]]) -> None:
        """
        Replace the tracked inputs and restart the debounce timer.

        Inputs equal to the current ones are ignored. Never raises: invalid
        inputs are reported through get_state().error.
        """
        try:
            inputs = (
                new_inputs
                if isinstance(new_inputs, TrackedInputSet)
                else TrackedInputSet.model_validate(new_inputs)
            )
        except ValidationError as e:
            logger.warning(f"Rejected invalid preview inputs: {e.error_count()} errors")
            self._error = f"Invalid inputs: {e.errors()[0].get('msg', 'validation error')}"
            return

        if inputs == self._inputs:
            logger.debug("Preview inputs unchanged, no recompute scheduled")
            return

        self._inputs = inputs
        self._restart_debounce()

    def _restart_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, estimate preview not scheduled")
            return

        self._debounce_task = loop.create_task(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        # Separate task: restarting the timer must not cancel a running compute
        task = asyncio.get_running_loop().create_task(self.recompute())
        self._scheduled.add(task)
        task.add_done_callback(self._scheduled.discard)

    # Computation

    async def recompute(self) -> PreviewState:
        """
        Compute an estimate from the current inputs.

        Does nothing when the minimum required data is missing. Otherwise
        calls the calculation service once and applies the outcome under the
        sequence-number rule.

        Returns:
            State snapshot after this attempt
        """
        inputs = self._inputs
        if inputs is None or not has_minimum_required_data(inputs, self._required_fields):
            logger.debug("Minimum required data missing, skipping estimate")
            return self.get_state()

        self._next_sequence += 1
        sequence = self._next_sequence
        self._pending.add(sequence)
        self._recompute_count += 1

        try:
            body = build_tax_input(inputs, self._tax_year, self._default_county)
            self._log.start_compute(sequence, body.filing_status.value, body.tax_year)
            result = await self._calculate(body)
            if not isinstance(result, EstimateResult):
                try:
                    result = EstimateResult.model_validate(result)
                except ValidationError as e:
                    raise MalformedEstimateError(
                        f"Calculation service returned an invalid estimate "
                        f"({e.error_count()} errors)"
                    ) from e
        except Exception as e:
            if not isinstance(e, TransientComputeFailure):
                logger.warning("Unexpected estimate failure", exc_info=True)
            self._apply_failure(sequence, e)
        else:
            self._apply_success(sequence, result)
        finally:
            self._pending.discard(sequence)

        return self.get_state()

    def _is_stale(self, sequence: int) -> bool:
        if sequence < self._applied_sequence:
            self._log.log_discarded(sequence, self._applied_sequence)
            return True
        return False

    def _apply_success(self, sequence: int, result: EstimateResult) -> None:
        if self._is_stale(sequence):
            return
        self._applied_sequence = sequence
        self._current = result
        self._error = None
        self._last_updated = datetime.now(timezone.utc)
        self._log.log_success(sequence, result.total_refund, result.total_tax_liability)

    def _apply_failure(self, sequence: int, exc: BaseException) -> None:
        if self._is_stale(sequence):
            return
        self._applied_sequence = sequence
        self._error = describe_failure(exc)
        self._log.log_failure(sequence, self._error)

    # State

    def _phase(self) -> PreviewPhase:
        if self._pending:
            return PreviewPhase.IN_FLIGHT
        debouncing = self._debounce_task is not None and not self._debounce_task.done()
        if debouncing or any(not t.done() for t in self._scheduled):
            return PreviewPhase.DEBOUNCING
        if self._applied_sequence > 0:
            return PreviewPhase.SETTLED
        return PreviewPhase.IDLE

    def get_state(self) -> PreviewState:
        """Immutable snapshot of the preview for rendering."""
        return PreviewState(
            current=self._current,
            error=self._error,
            last_updated=self._last_updated,
            in_flight=bool(self._pending),
            phase=self._phase(),
            applied_sequence=self._applied_sequence,
        )

    # Lifecycle

    async def wait_until_settled(self) -> PreviewState:
        """Wait for the pending debounce timer and any computes it started."""
        while True:
            waiting = [t for t in self._scheduled if not t.done()]
            if self._debounce_task is not None and not self._debounce_task.done():
                waiting.append(self._debounce_task)
            if not waiting:
                return self.get_state()
            await asyncio.gather(*waiting, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel a pending debounce timer and let running computes finish."""
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        await self.wait_until_settled()
