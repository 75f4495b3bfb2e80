"""Exception hierarchy for beancheck.

Every error carries a ``diagnostics`` dict with structured context (case
name, sample index, payload) so a failing contract test can be debugged
from the report alone.
"""

from __future__ import annotations

from typing import Any


class BeanCheckError(Exception):
    """Base class for beancheck failures with diagnostic context.

    Attributes:
        diagnostics: Structured information about the failure.
    """

    def __init__(self, message: str, *, diagnostics: dict[str, Any] | None = None) -> None:
        """Initialize with a message and optional structured diagnostics.

        Args:
            message: Human-readable error description.
            diagnostics: Structured context for debugging.
        """
        super().__init__(message)
        self.diagnostics: dict[str, Any] = dict(diagnostics or {})


class ConfigError(BeanCheckError):
    """A configuration file is missing or does not describe a valid config."""


class DiscoveryError(BeanCheckError):
    """Discovery found no concrete bean types.

    An empty discovery result always indicates a broken registry setup and
    must halt the suite instead of passing silently.
    """


class SynthesisError(BeanCheckError):
    """A random instance could not be produced for a type."""


class SerdeError(BeanCheckError):
    """Encoding or decoding a synthesized sample failed.

    The underlying exception is chained as ``__cause__``.

    Attributes:
        payload: The textual wire payload, or ``None`` when encoding failed.
        sample: Index of the failing sample.
    """

    def __init__(
        self,
        message: str,
        *,
        payload: str | None,
        sample: int,
        diagnostics: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending payload and sample index.

        Args:
            message: Human-readable error description.
            payload: Wire payload that failed to decode, if any.
            sample: Index of the failing sample.
            diagnostics: Additional structured context.
        """
        super().__init__(
            message,
            diagnostics={**(diagnostics or {}), "payload": payload, "sample": sample},
        )
        self.payload = payload
        self.sample = sample
