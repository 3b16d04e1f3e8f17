import random

import pytest

from contract_scanner.agents.fallback_synthesizer import FallbackSynthesizer
from contract_scanner.agents.risk_breakdown import compute_risk_breakdown
from contract_scanner.schemas.analysis import Severity


class FixedRandom(random.Random):
    def __init__(self, value):
        super().__init__()
        self.value = value

    def random(self):
        return self.value


@pytest.mark.parametrize("seed", range(20))
def test_risk_score_in_base_range(request_factory, seed):
    score = FallbackSynthesizer(rng=random.Random(seed)).synthesize(request_factory()).risk_score
    assert 0.4 <= score < 0.7


def test_wide_focus_nudges_score_up(request_factory):
    narrow = request_factory(analysis_focus=["ambiguity", "legal_risk", "unfavorable_terms"])
    wide = request_factory(analysis_focus=["ambiguity", "legal_risk", "unfavorable_terms", "performance_timeline"])
    synthesizer = FallbackSynthesizer(rng=FixedRandom(0.5))

    assert synthesizer.risk_score(narrow) == pytest.approx(0.55)
    assert synthesizer.risk_score(wide) == pytest.approx(0.65)


def test_score_is_capped(request_factory):
    request = request_factory(analysis_focus=[
        "ambiguity", "legal_risk", "unfavorable_terms", "performance_timeline", "termination_liquidated_damages",
    ])
    assert FallbackSynthesizer(rng=FixedRandom(0.9999)).risk_score(request) <= 1.0


def test_static_content(request_factory):
    request = request_factory(analysis_focus=["performance_timeline"], report_format="detailed")

    outcome = FallbackSynthesizer(rng=random.Random(1)).synthesize(request)

    assert outcome.risk_breakdown == compute_risk_breakdown(request.analysis_focus)
    assert [f.severity for f in outcome.key_findings] == [Severity.HIGH, Severity.MEDIUM, Severity.LOW]
    assert [s.heading for s in outcome.sections] == ["Executive Summary", "카테고리별 분석"]
    assert outcome.negotiation_points is None
    assert outcome.alignment_with_reference.has_reference is False
    assert outcome.alignment_with_reference.mismatches == []


def test_negotiation_points_only_for_negotiation_format(request_factory):
    outcome = FallbackSynthesizer().synthesize(request_factory(report_format="negotiation_points"))
    assert len(outcome.negotiation_points) == 3


def test_reference_docs_produce_alignment_mismatch(request_factory):
    reference = {"name": "standard.pdf", "mimeType": "application/pdf", "size": 10, "storageKey": "ref/1"}

    outcome = FallbackSynthesizer().synthesize(request_factory(reference_docs=[reference]))

    assert outcome.alignment_with_reference.has_reference is True
    assert outcome.alignment_with_reference.mismatches[0].topic == "지급 조건"
