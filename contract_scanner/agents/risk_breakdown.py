from typing import Dict, Iterable, Tuple

from contract_scanner.schemas.analysis import AnalysisFocus, RiskBreakdown

# (weight when the tag is in focus, weight when it is not)
BREAKDOWN_WEIGHTS: Dict[AnalysisFocus, Tuple[float, float]] = {
    AnalysisFocus.UNFAVORABLE_TERMS: (0.25, 0.05),
    AnalysisFocus.AMBIGUITY: (0.15, 0.03),
    AnalysisFocus.LEGAL_RISK: (0.20, 0.08),
    AnalysisFocus.PERFORMANCE_TIMELINE: (0.10, 0.02),
    AnalysisFocus.TERMINATION_LIQUIDATED_DAMAGES: (0.12, 0.04),
}


def compute_risk_breakdown(focus: Iterable[AnalysisFocus]) -> RiskBreakdown:
    """Derive the per-category breakdown from the requested focus tags.

    The breakdown never depends on model output, so the same focus set
    always yields the same values.
    """
    selected = {AnalysisFocus(tag) for tag in focus}
    return RiskBreakdown(**{
        tag.value: high if tag in selected else low
        for tag, (high, low) in BREAKDOWN_WEIGHTS.items()
    })


def zero_risk_breakdown() -> RiskBreakdown:
    return RiskBreakdown(**{tag.value: 0.0 for tag in BREAKDOWN_WEIGHTS})
