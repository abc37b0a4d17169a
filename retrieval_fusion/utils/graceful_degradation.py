"""Graceful degradation policy for candidate sources."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from .error_handling import ErrorContext, RequestFailedError, get_error_handler

if TYPE_CHECKING:
    from ..models.core import CandidateList

logger = logging.getLogger(__name__)


@dataclass
class DegradationConfig:
    """Configuration for graceful degradation."""
    min_sources_required: int = 1
    required_sources: Set[str] = field(default_factory=set)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DegradationConfig":
        data = data or {}
        required = set()
        if data.get("lexical_required"):
            required.add("lexical")
        if data.get("vector_required"):
            required.add("vector")
        return cls(
            min_sources_required=int(data.get("min_sources_required", 1)),
            required_sources=required
        )


@dataclass
class SourceOutcome:
    """What one candidate source produced for a request."""
    source_id: str
    candidates: Optional["CandidateList"] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class GracefulDegradationManager:
    """Decides whether failed sources degrade to empty lists or fail the request."""

    def __init__(self, config: Optional[DegradationConfig] = None):
        """Initialize graceful degradation manager.

        Args:
            config: Degradation configuration
        """
        self.config = config or DegradationConfig()
        self.error_handler = get_error_handler()

    def resolve(self, outcomes: List[SourceOutcome], query: str = "") -> Dict[str, "CandidateList"]:
        """Turn source outcomes into the candidate lists handed to fusion.

        Failed sources contribute nothing. The request fails when a required
        source failed, or when fewer sources responded than required (capped at
        the number of sources invoked, so a single-source request survives only
        if that source answers).

        A lone failed source is a failed request rather than an empty result:
        degrading needs another source that answered.

        Args:
            outcomes: One outcome per invoked source
            query: Query text, for error context

        Returns:
            Dictionary mapping source_id to its candidates, for successful sources

        Raises:
            RequestFailedError: If the degradation policy cannot be satisfied
        """
        if not outcomes:
            return {}

        failed = [outcome for outcome in outcomes if not outcome.succeeded]
        succeeded = {
            outcome.source_id: outcome.candidates
            for outcome in outcomes if outcome.succeeded
        }

        for outcome in failed:
            if outcome.source_id in self.config.required_sources:
                raise RequestFailedError(
                    f"Required source '{outcome.source_id}' unavailable: {outcome.error}"
                ) from outcome.error

        needed = min(self.config.min_sources_required, len(outcomes))
        if len(succeeded) < needed:
            error = RequestFailedError(
                f"Only {len(succeeded)}/{len(outcomes)} candidate sources responded, "
                f"{needed} required"
            )
            context = ErrorContext(
                component="GracefulDegradationManager",
                operation="resolve",
                query=query,
                additional_data={"failed_sources": [outcome.source_id for outcome in failed]}
            )
            self.error_handler.handle_error(error, context)
            raise error

        if failed:
            logger.warning(
                f"Degraded request: continuing without {[outcome.source_id for outcome in failed]}"
            )

        return succeeded

    def get_degradation_status(self) -> Dict[str, Any]:
        """Get current degradation configuration."""
        return {
            "min_sources_required": self.config.min_sources_required,
            "required_sources": sorted(self.config.required_sources)
        }
