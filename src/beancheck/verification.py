"""Round-trip and structural contract checks for bean types.

Four independent checks run against every ``BeanCase``:

- ``check_constructor_parameters``: every serialized property can be passed
  to the constructor by name.
- ``check_no_setters``: no property exposes a setter.
- ``check_final_properties``: no property can be reassigned.
- ``check_serde``: synthesized samples survive encode -> decode (through the
  polymorphic root) -> structural comparison.

Structural defects and equality mismatches come back as failed
``CheckResult`` values. Encoding or decoding failures raise ``SerdeError``
with the offending payload and the original cause chained.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from beancheck.equality import deep_diff
from beancheck.errors import BeanCheckError, SerdeError
from beancheck.introspection import describe
from beancheck.models import (
    BeanCase,
    CaseReport,
    CheckName,
    CheckResult,
    Property,
    RoundTripResult,
    SuiteReport,
    VerifierConfig,
)
from beancheck.serialization import JsonSerializer, Serializer
from beancheck.synthesis import LeafGenerator, synthesize

logger = logging.getLogger(__name__)


def _type_label(annotation: Any) -> str:
    if isinstance(annotation, type):
        return annotation.__name__
    return repr(annotation).replace("typing.", "")


# ---------------------------------------------------------------------------
# Structural checks
# ---------------------------------------------------------------------------


def _constructor_offender(prop: Property) -> str:
    label = f"{prop.name}: {_type_label(prop.annotation)}"
    if prop.constructor_annotation is None:
        return label
    return f"{label} (constructor takes {_type_label(prop.constructor_annotation)})"


def check_constructor_parameters(case: BeanCase) -> CheckResult:
    """Check that every serialized property has a matching constructor parameter.

    Args:
        case: The bean case under test.

    Returns:
        A ``CheckResult`` whose offenders are ``"name: type"`` labels, followed
        by the constructor's own annotation when the parameter exists but
        has an incompatible type.
    """
    missing = [p for p in describe(case.concrete) if not p.has_constructor_parameter]
    if not missing:
        return CheckResult(case=case.name, check=CheckName.CONSTRUCTOR_PARAMETERS, passed=True)
    offenders = [_constructor_offender(p) for p in missing]
    return CheckResult(
        case=case.name,
        check=CheckName.CONSTRUCTOR_PARAMETERS,
        passed=False,
        message=f"{case.name} has no constructor parameter for {', '.join(offenders)}",
        offenders=offenders,
    )


def check_no_setters(case: BeanCase) -> CheckResult:
    """Check that no serialized property exposes a setter."""
    offenders = [p.name for p in describe(case.concrete) if p.has_mutator]
    if not offenders:
        return CheckResult(case=case.name, check=CheckName.NO_SETTERS, passed=True)
    return CheckResult(
        case=case.name,
        check=CheckName.NO_SETTERS,
        passed=False,
        message=f"{case.name} has setters for: {', '.join(offenders)}",
        offenders=offenders,
    )


def check_final_properties(case: BeanCase) -> CheckResult:
    """Check that every serialized property is immutable."""
    offenders = [p.name for p in describe(case.concrete) if not p.is_immutable]
    if not offenders:
        return CheckResult(case=case.name, check=CheckName.FINAL_PROPERTIES, passed=True)
    return CheckResult(
        case=case.name,
        check=CheckName.FINAL_PROPERTIES,
        passed=False,
        message=f"{case.name} has mutable fields: {', '.join(offenders)}",
        offenders=offenders,
    )


# ---------------------------------------------------------------------------
# Round-trip check
# ---------------------------------------------------------------------------


def case_serializer(case: BeanCase, serializer: Serializer | None = None) -> Serializer:
    """Return a private serializer for *case* with its concrete type registered.

    The given *serializer* is copied, never mutated.
    """
    engine = serializer.copy() if serializer is not None else JsonSerializer()
    engine.register_subtype(case.concrete)
    return engine


def run_round_trip(
    case: BeanCase,
    sample: int,
    serializer: Serializer,
    config: VerifierConfig,
    generators: Mapping[type, LeafGenerator] | None = None,
) -> RoundTripResult:
    """Synthesize, encode, decode, and compare a single sample.

    Args:
        case: The bean case under test.
        sample: Zero-based sample index; the seed is ``config.base_seed + sample``.
        serializer: The case's private serialization engine.
        config: Verifier configuration.
        generators: Extra or overriding leaf generators for synthesis.

    Returns:
        The round-trip result, including structural differences.

    Raises:
        SerdeError: If encoding or decoding fails.
        SynthesisError: If no instance can be synthesized.
    """
    seed = config.base_seed + sample
    original = synthesize(case.concrete, seed, config, generators)
    diagnostics = {"case": case.name, "seed": seed}

    try:
        payload = serializer.encode(original)
    except Exception as exc:
        msg = f"Failed to encode sample {sample} of {case.name} ({original!r}): {exc}"
        raise SerdeError(msg, payload=None, sample=sample, diagnostics=diagnostics) from exc

    try:
        decoded = serializer.decode(payload, case.root)
    except Exception as exc:
        msg = (
            f"Failed to decode sample {sample} of {case.name} as "
            f"{case.root.__qualname__}: {exc}\nPayload: {payload}"
        )
        raise SerdeError(msg, payload=payload, sample=sample, diagnostics=diagnostics) from exc

    logger.debug("Round-tripped sample %d of %s: %s", sample, case.name, payload)
    return RoundTripResult(
        sample=sample,
        seed=seed,
        payload=payload,
        original=original,
        decoded=decoded,
        differences=deep_diff(original, decoded),
    )


def check_serde(
    case: BeanCase,
    serializer: Serializer | None = None,
    config: VerifierConfig | None = None,
    generators: Mapping[type, LeafGenerator] | None = None,
) -> CheckResult:
    """Check that ``config.samples`` random instances round-trip unchanged.

    Stops at the first mismatching sample.

    Args:
        case: The bean case under test.
        serializer: Engine to copy for this case; defaults to ``JsonSerializer``.
        config: Verifier configuration.
        generators: Extra or overriding leaf generators for synthesis.

    Returns:
        A ``CheckResult``; on mismatch it carries the sample index, payload,
        and the first structural differences.

    Raises:
        SerdeError: If encoding or decoding a sample fails.
    """
    config = config if config is not None else VerifierConfig()
    engine = case_serializer(case, serializer)

    for sample in range(config.samples):
        result = run_round_trip(case, sample, engine, config, generators)
        if result.equal:
            continue
        shown = result.differences[: config.max_differences]
        details = "\n".join(f"  {d}" for d in shown)
        message = (
            f"Sample {sample} (seed {result.seed}) of {case.name} did not round-trip; "
            f"{len(result.differences)} difference(s):\n{details}\nPayload: {result.payload}"
        )
        logger.warning("%s", message)
        return CheckResult(
            case=case.name,
            check=CheckName.SERDE,
            passed=False,
            message=message,
            sample=sample,
            payload=result.payload,
            differences=shown,
        )

    return CheckResult(case=case.name, check=CheckName.SERDE, passed=True)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def verify_case(
    case: BeanCase,
    serializer: Serializer | None = None,
    config: VerifierConfig | None = None,
    generators: Mapping[type, LeafGenerator] | None = None,
) -> CaseReport:
    """Run all four checks against *case* and collect their results.

    A failing check never prevents the others from running. Serde and
    synthesis errors are logged with their traceback and recorded as a
    failed serde result.
    """
    results = [
        check_constructor_parameters(case),
        check_no_setters(case),
        check_final_properties(case),
    ]
    try:
        results.append(check_serde(case, serializer, config, generators))
    except BeanCheckError as exc:
        logger.warning("Serde check of %s raised", case.name, exc_info=True)
        cause = exc.__cause__
        message = str(exc) if cause is None else f"{exc}\nCaused by: {cause!r}"
        results.append(
            CheckResult(
                case=case.name,
                check=CheckName.SERDE,
                passed=False,
                message=message,
                sample=exc.diagnostics.get("sample"),
                payload=exc.diagnostics.get("payload"),
            )
        )

    report = CaseReport(case=case.name, results=results)
    for result in results:
        # Serde failures are logged where they are detected.
        if not result.passed and result.check != CheckName.SERDE:
            logger.warning("%s failed %s: %s", case.name, result.check, result.message)
    return report


def verify_all(
    cases: list[BeanCase] | tuple[BeanCase, ...],
    serializer: Serializer | None = None,
    config: VerifierConfig | None = None,
    generators: Mapping[type, LeafGenerator] | None = None,
) -> SuiteReport:
    """Verify every case and aggregate the reports."""
    reports = [verify_case(case, serializer, config, generators) for case in cases]
    suite = SuiteReport(cases=reports)
    failed = sum(1 for r in reports if not r.passed)
    logger.info("Verified %d bean type(s): %d failed", len(reports), failed)
    return suite
