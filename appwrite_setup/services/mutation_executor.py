from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Optional

from appwrite_setup.services.appwrite_service import AppwriteServiceError


logger = logging.getLogger(__name__)

RESOURCE_LIMIT_ERROR_TYPE = "additional_resource_not_allowed"

RemoteOperation = Callable[[], Awaitable[Any]]


class MutationOutcome(str, Enum):
    APPLIED = "applied"
    ALREADY_PRESENT = "already_present"
    RESOURCE_LIMIT_REACHED = "resource_limit_reached"
    FATAL = "fatal"


@dataclass(frozen=True)
class MutationResult:
    """Outcome of one remote create call.

    Kept with the executor rather than under models/: it is an internal control-flow
    value, not part of the schema plan.
    """

    outcome: MutationOutcome
    description: str
    cause: Optional[BaseException] = None

    @property
    def is_success(self) -> bool:
        return self.outcome in (MutationOutcome.APPLIED, MutationOutcome.ALREADY_PRESENT)

    @property
    def is_applied(self) -> bool:
        return self.outcome is MutationOutcome.APPLIED

    @staticmethod
    def fatal(description: str, cause: BaseException) -> "MutationResult":
        return MutationResult(outcome=MutationOutcome.FATAL, description=description, cause=cause)


class MutationExecutor:
    """Runs one remote schema mutation and classifies how it ended.

    Remote failures never escape `execute`; they come back as a `MutationResult` so
    callers decide what is tolerable.
    """

    @staticmethod
    def classify(exc: AppwriteServiceError) -> MutationOutcome:
        if exc.status == HTTPStatus.CONFLICT:
            return MutationOutcome.ALREADY_PRESENT
        if exc.status == HTTPStatus.FORBIDDEN and exc.error_type == RESOURCE_LIMIT_ERROR_TYPE:
            return MutationOutcome.RESOURCE_LIMIT_REACHED
        return MutationOutcome.FATAL

    async def execute(self, operation: RemoteOperation, *, description: str) -> MutationResult:
        try:
            await operation()
        except AppwriteServiceError as exc:
            outcome = self.classify(exc)
            if outcome is MutationOutcome.ALREADY_PRESENT:
                logger.info("%s (already exists)", description)
            elif outcome is MutationOutcome.RESOURCE_LIMIT_REACHED:
                logger.warning("%s: resource limit reached: %s", description, exc)
            else:
                logger.error("%s failed: %s", description, exc)
            return MutationResult(outcome=outcome, description=description, cause=exc)
        except Exception as exc:
            logger.error("%s failed unexpectedly: %s", description, exc)
            return MutationResult.fatal(description, exc)

        logger.info("%s", description)
        return MutationResult(outcome=MutationOutcome.APPLIED, description=description)
