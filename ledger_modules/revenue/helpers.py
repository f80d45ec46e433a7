"""
Pure state-machine helpers for revenue recognition.

All functions are pure: no I/O, no clock.  "today" is passed in.
"""

from datetime import date

from ledger_kernel.domain.fiscal import is_service_completed
from ledger_kernel.exceptions import (
    AlreadyRecognizedError,
    InvalidRecognitionTransitionError,
    RecognitionNotDueError,
)

from ledger_modules.revenue.models import RecognitionStatus, RecognitionTrigger


def initial_status(service_end_date: date | None, today: date) -> RecognitionStatus:
    """
    Status of a record at creation.

    No end date -> needs_review; end date on or before today -> recognized;
    otherwise pending.
    """
    if service_end_date is None:
        return RecognitionStatus.NEEDS_REVIEW
    if is_service_completed(service_end_date, today):
        return RecognitionStatus.RECOGNIZED
    return RecognitionStatus.PENDING


def next_status(
    recognition_id: str,
    status: RecognitionStatus,
    trigger: RecognitionTrigger,
    service_end_date: date | None,
    today: date,
) -> RecognitionStatus:
    """
    Target status of a recognition attempt.

    Raises:
        AlreadyRecognizedError: record is recognized or manual_recognized.
        RecognitionNotDueError: automatic trigger before the service ended.
        InvalidRecognitionTransitionError: any other combination.
    """
    status = RecognitionStatus(status)
    trigger = RecognitionTrigger(trigger)

    if status.is_recognized:
        raise AlreadyRecognizedError(recognition_id, status.value)

    if status == RecognitionStatus.PENDING:
        if trigger == RecognitionTrigger.AUTOMATIC:
            if not is_service_completed(service_end_date, today):
                raise RecognitionNotDueError(
                    recognition_id,
                    service_end_date.isoformat() if service_end_date else "unknown",
                    today.isoformat(),
                )
            return RecognitionStatus.RECOGNIZED
        if trigger == RecognitionTrigger.MANUAL:
            return RecognitionStatus.RECOGNIZED

    if status == RecognitionStatus.NEEDS_REVIEW and trigger in (
        RecognitionTrigger.MANUAL,
        RecognitionTrigger.IMMEDIATE,
    ):
        return RecognitionStatus.MANUAL_RECOGNIZED

    raise InvalidRecognitionTransitionError(recognition_id, status.value, trigger.value)
