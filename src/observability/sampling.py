"""
Trace sampling policy selection.

The policy is chosen once at startup. Ratio sampling derives the decision from
the trace id, so every process that sees the same trace id reaches the same
decision without sharing state. Child spans follow their parent's decision,
which keeps sampled traces complete.
"""

from enum import Enum
from typing import Optional

from opentelemetry.sdk.trace.sampling import (
    ALWAYS_ON,
    ParentBased,
    Sampler,
    TraceIdRatioBased,
)

from src.core.config import SamplingSettings
from src.observability.logging import get_logger

logger = get_logger(__name__)


class SamplerKind(str, Enum):
    """Closed set of sampling policies."""

    ALWAYS_ON = "always_on"
    TRACE_ID_RATIO = "trace_id_ratio"


def clamp_ratio(ratio: float) -> float:
    """Clamp a sampling ratio to [0.0, 1.0]."""
    return min(1.0, max(0.0, ratio))


def resolve_sampler_kind(sampling: SamplingSettings) -> SamplerKind:
    """Map sampling settings onto a sampler kind."""
    if sampling.always_on:
        return SamplerKind.ALWAYS_ON
    return SamplerKind.TRACE_ID_RATIO


def select_sampler(
    sampling: SamplingSettings,
    service_name: Optional[str] = None,
) -> Sampler:
    """
    Build the trace sampler for the tracer provider.

    Args:
        sampling: Sampling settings (always_on, ratio)
        service_name: Used only to label the diagnostic log line

    Returns:
        ``ALWAYS_ON`` when always_on is set, otherwise a parent-based sampler
        whose root decision is ``TraceIdRatioBased(ratio)``
    """
    kind = resolve_sampler_kind(sampling)

    if kind is SamplerKind.ALWAYS_ON:
        logger.info("sampler selected", service=service_name, sampler=kind.value)
        return ALWAYS_ON

    if kind is SamplerKind.TRACE_ID_RATIO:
        ratio = clamp_ratio(sampling.ratio)
        if ratio != sampling.ratio:
            logger.warning(
                "sampling ratio out of range, clamped",
                service=service_name,
                configured=sampling.ratio,
                ratio=ratio,
            )
        logger.info(
            "sampler selected", service=service_name, sampler=kind.value, ratio=ratio
        )
        return ParentBased(root=TraceIdRatioBased(ratio))

    raise AssertionError(f"Unhandled sampler kind: {kind}")
