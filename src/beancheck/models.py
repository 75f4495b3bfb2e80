"""Core data models for beancheck.

Defines the Pydantic models shared across the introspector, synthesizer,
verifier, and discovery driver: property metadata, test cases, check
results and reports, and the verifier configuration.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from beancheck.beans import Bean

# Signed 32-bit epoch seconds: 1901-12-13T20:45:52Z .. 2038-01-19T03:14:07Z.
DEFAULT_TEMPORAL_BOUND_SECONDS = 2**31 - 1


class VerifierConfig(BaseModel):
    """Sampling, synthesis, and reporting parameters.

    Attributes:
        samples: Round-trip samples per bean type.
        base_seed: Seed of the first sample; sample ``i`` uses ``base_seed + i``.
        min_collection_size: Minimum number of elements in synthesized containers.
        max_collection_size: Maximum number of elements in synthesized containers.
        max_depth: How many times a bean type may recur into itself before
            that innermost instance gets empty containers and ``None``
            optionals. Non-recursive graphs are never cut.
        temporal_bound_seconds: Synthesized instants and durations stay
            within this many seconds of the Unix epoch.
        max_differences: Maximum structural differences quoted in a report.
        log_level: Logging level for the ``beancheck`` logger.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    samples: int = 10
    base_seed: int = 0
    min_collection_size: int = 1
    max_collection_size: int = 3
    max_depth: int = 6
    temporal_bound_seconds: int = DEFAULT_TEMPORAL_BOUND_SECONDS
    max_differences: int = 10
    log_level: str = "WARNING"

    @field_validator(
        "samples",
        "min_collection_size",
        "max_collection_size",
        "max_depth",
        "temporal_bound_seconds",
        "max_differences",
    )
    @classmethod
    def _must_be_positive(cls, v: int) -> int:
        """Validate that counts and bounds are >= 1."""
        if v < 1:
            msg = "Value must be >= 1"
            raise ValueError(msg)
        return v

    @field_validator("base_seed")
    @classmethod
    def _seed_must_be_non_negative(cls, v: int) -> int:
        """Validate that the base seed is >= 0."""
        if v < 0:
            msg = "base_seed must be >= 0"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def _check_collection_bounds(self) -> VerifierConfig:
        """Validate that the collection size range is not inverted."""
        if self.min_collection_size > self.max_collection_size:
            msg = (
                f"min_collection_size ({self.min_collection_size}) must not exceed "
                f"max_collection_size ({self.max_collection_size})"
            )
            raise ValueError(msg)
        return self


class Property(BaseModel):
    """Structural metadata of one serialized bean property.

    Attributes:
        name: Field name, unique within the bean type.
        annotation: Declared type of the field.
        has_mutator: Whether the bean exposes a setter for the field.
        has_constructor_parameter: Whether the constructor accepts the field
            by name with a compatible annotation.
        constructor_annotation: Annotation of the constructor parameter that
            receives the field, or None when there is no such parameter or it
            is unannotated.
        is_immutable: Whether the field cannot be reassigned after construction.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    annotation: Any
    has_mutator: bool
    has_constructor_parameter: bool
    is_immutable: bool
    constructor_annotation: Any = None


class BeanCase(BaseModel):
    """One discovered bean type under test.

    Attributes:
        root: Deserialization target (the polymorphic root, or the type itself).
        concrete: The concrete bean type that is synthesized and encoded.
        name: Fully-qualified name of the concrete type, used as the test id.
    """

    model_config = ConfigDict(frozen=True)

    root: type[Bean]
    concrete: type[Bean]
    name: str


class CheckName(StrEnum):
    """The four contract checks run against every bean type."""

    CONSTRUCTOR_PARAMETERS = "constructor_parameters"
    NO_SETTERS = "no_setters"
    FINAL_PROPERTIES = "final_properties"
    SERDE = "serde"


class Difference(BaseModel):
    """A single divergence found by structural comparison.

    Attributes:
        path: Location of the divergence, e.g. ``$.items[2].name``.
        expected: ``repr`` of the value in the original instance.
        actual: ``repr`` of the value in the reconstructed instance.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    expected: str
    actual: str

    def __str__(self) -> str:
        return f"{self.path}: expected {self.expected}, got {self.actual}"


class RoundTripResult(BaseModel):
    """Outcome of one encode/decode/compare sample.

    Attributes:
        sample: Zero-based sample index.
        seed: Seed used to synthesize the original instance.
        payload: Textual wire payload produced by the encoder.
        original: The synthesized instance.
        decoded: The instance reconstructed from the payload.
        differences: Structural differences between the two, in traversal order.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    sample: int
    seed: int
    payload: str
    original: Any
    decoded: Any
    differences: list[Difference] = []

    @property
    def equal(self) -> bool:
        """Whether the decoded instance is structurally equal to the original."""
        return not self.differences


class CheckResult(BaseModel):
    """Outcome of one check against one bean type.

    Attributes:
        case: Name of the bean case.
        check: Which check produced this result.
        passed: Whether the check passed.
        message: Human-readable failure description (empty on success).
        offenders: Offending property names (structural checks).
        sample: Failing sample index (serde check).
        payload: Wire payload of the failing sample (serde check).
        differences: First structural differences of the failing sample.
    """

    model_config = ConfigDict(frozen=True)

    case: str
    check: CheckName
    passed: bool
    message: str = ""
    offenders: list[str] = []
    sample: int | None = None
    payload: str | None = None
    differences: list[Difference] = []


class CaseReport(BaseModel):
    """All check results for one bean case."""

    model_config = ConfigDict(frozen=True)

    case: str
    results: list[CheckResult]

    @property
    def passed(self) -> bool:
        """Whether every check passed."""
        return all(r.passed for r in self.results)

    def result(self, check: CheckName) -> CheckResult:
        """Return the result of *check*.

        Raises:
            KeyError: If the check was not run.
        """
        for r in self.results:
            if r.check == check:
                return r
        raise KeyError(check)


class SuiteReport(BaseModel):
    """Aggregated results for every discovered bean case."""

    model_config = ConfigDict(frozen=True)

    cases: list[CaseReport]

    @property
    def passed(self) -> bool:
        """Whether every case passed."""
        return all(c.passed for c in self.cases)

    def failures(self) -> list[CheckResult]:
        """Return every failed check result, in case order."""
        return [r for c in self.cases for r in c.results if not r.passed]
