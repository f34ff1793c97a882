"""
Job Handler Registry
====================

Closed mapping from ``JobType`` to the coroutine that processes it.

The mapping is written out explicitly and checked against the enum when the
registry is built, so adding a ``JobType`` member without a handler fails at
import time instead of silently falling through at runtime.

To add a job type: add the enum member in ``backend.services.job_store``,
write the handler in ``backend.worker.handlers`` and add one entry to
``_HANDLERS`` below.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Mapping

from backend.services.exceptions import ConfigurationError, UnknownJobTypeError
from backend.services.job_store import JobType
from backend.worker import handlers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandlerSpec:
    """A handler plus whether it takes the job's ``target_user_id``."""
    handler: Callable[..., Awaitable[bool]]
    user_scoped: bool


_HANDLERS: Dict[JobType, HandlerSpec] = {
    JobType.GENERATE_MATCHES: HandlerSpec(handlers.generate_matches, user_scoped=True),
    JobType.UPDATE_EMBEDDINGS: HandlerSpec(handlers.update_embeddings, user_scoped=True),
    JobType.CLEANUP_STALE: HandlerSpec(handlers.cleanup_stale, user_scoped=False),
    JobType.CALCULATE_STATS: HandlerSpec(handlers.calculate_stats, user_scoped=False),
}


class HandlerRegistry:
    """Lookup of handlers by raw job-type tag."""

    def __init__(self, mapping: Mapping[JobType, HandlerSpec]):
        missing = [t.value for t in JobType if t not in mapping]
        if missing:
            raise ConfigurationError(
                message="Job types without a registered handler",
                context={"missing": missing},
            )
        self._mapping: Dict[JobType, HandlerSpec] = dict(mapping)

    def resolve(self, job_type: str) -> HandlerSpec:
        """
        Return the handler spec for a raw job-type tag.

        Raises:
            UnknownJobTypeError: If the tag is not a supported job type
        """
        known = JobType.parse(job_type)
        if known is None:
            raise UnknownJobTypeError(job_type=job_type)
        return self._mapping[known]

    def supported_types(self) -> List[str]:
        return [t.value for t in self._mapping]


job_registry = HandlerRegistry(_HANDLERS)
