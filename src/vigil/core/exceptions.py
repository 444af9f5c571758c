"""vigil exception hierarchy.

All exceptions inherit from VigilError.
Timeouts are not errors: waits report them as ordinary return values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from vigil.core.models import WaitOutcome


class VigilError(Exception):
    """Base exception for all vigil errors."""


class ConfigError(VigilError):
    """Configuration file load/validation error."""


class ArgumentError(VigilError, ValueError):
    """Missing or invalid argument passed to a wait. Raised before polling starts."""


class EngineError(VigilError):
    """Signal source error (backend start failure, unsupported operation, etc.)."""


class SignalError(VigilError):
    """Transient capture/lookup failure. The poll loop treats it as 'not yet'."""


class MatchError(VigilError):
    """Image matching error (template image load failure, etc.)."""


class WaitCancelledError(VigilError):
    """Cancellation requested while waiting. Unwinds the whole automation."""

    def __init__(self, outcome: WaitOutcome[Any]) -> None:
        self.outcome = outcome
        super().__init__(
            f"Wait cancelled after {outcome.elapsed_ms:.0f}ms ({outcome.polls} polls)"
        )
