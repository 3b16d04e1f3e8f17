import json
import logging
from typing import Any, Dict, List, Optional
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from contract_scanner.agents.risk_breakdown import compute_risk_breakdown
from contract_scanner.core.llm import GroqChatModel, LLMInvocationError, MissingAPIKeyError
from contract_scanner.schemas.analysis import (
    AnalysisFocus,
    AnalysisOutcome,
    AnalysisRequest,
    ClauseLocation,
    ComposedPrompts,
    Confidence,
    Finding,
    NegotiationPoint,
    Priority,
    ReportItem,
    ReportSection,
    Severity,
)

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.3
DEFAULT_RISK_SCORE = 0.5
DEFAULT_EXECUTIVE_SUMMARY = "분석이 완료되었습니다."
DEFAULT_RECOMMENDATION = "전문가 검토를 권장합니다."


class InvocationFailure(Exception):
    """The model call did not produce a usable analysis."""

    code = "INVOCATION_FAILED"


class MissingCredentialError(InvocationFailure):
    code = "MISSING_CREDENTIAL"


class TransportError(InvocationFailure):
    code = "TRANSPORT_ERROR"


class ParseError(InvocationFailure):
    code = "PARSE_ERROR"


def _coerce_risk_score(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_RISK_SCORE
    if not 0.0 <= value <= 1.0:
        return DEFAULT_RISK_SCORE
    return float(value)


def _coerce_enum(enum_cls, value: Any, default):
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    return default


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_location(raw: Any) -> ClauseLocation:
    if isinstance(raw, dict):
        page = raw.get("page")
        return ClauseLocation(
            page=page if isinstance(page, int) and not isinstance(page, bool) else None,
            section=_text(raw.get("section")),
            paragraph=_text(raw.get("paragraph")),
        )
    return ClauseLocation(section=_text(raw))


def normalize_findings(raw: Any, request: AnalysisRequest) -> List[Finding]:
    """Map the model's keyFindings onto Finding objects.

    Entries that are not objects or lack any text are dropped. Unknown
    finding types fall back to the request's first focus tag.
    """
    if not isinstance(raw, list):
        return []

    findings = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        title = _text(item.get("title"))
        reason = _text(item.get("reason")) or _text(item.get("description"))
        if not title and not reason:
            continue
        excerpt = item.get("clause_excerpt", item.get("clauseExcerpt"))
        location = item.get("clause_location", item.get("clauseLocation"))
        findings.append(Finding(
            type=_coerce_enum(AnalysisFocus, item.get("type"), request.analysis_focus[0]),
            title=title or reason,
            severity=_coerce_enum(Severity, item.get("severity"), Severity.MEDIUM),
            confidence=_coerce_enum(Confidence, item.get("confidence"), Confidence.MEDIUM),
            reason=reason or title,
            clause_excerpt=_text(excerpt),
            clause_location=_normalize_location(location),
        ))
    return findings


def normalize_negotiation_points(raw: Any) -> List[NegotiationPoint]:
    """Map the model's negotiationPoints onto NegotiationPoint objects."""
    if not isinstance(raw, list):
        return []

    points = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        issue = _text(item.get("issue"))
        if not issue:
            continue
        suggestion = item.get("suggested_rewrite", item.get("suggestedChange"))
        points.append(NegotiationPoint(
            issue=issue,
            impact=_text(item.get("impact")) or "",
            priority=_coerce_enum(Priority, item.get("priority"), Priority.MEDIUM),
            suggested_rewrite=_text(suggestion) or "",
            rationale=_text(item.get("rationale")) or "",
        ))
    return points


def build_report_sections(executive_summary: Any, recommendations: Any) -> List[ReportSection]:
    recommendations = [text for text in map(_text, recommendations) if text] if isinstance(recommendations, list) else []

    sections = [
        ReportSection(
            heading="Executive Summary",
            items=[ReportItem(
                label="전체 평가",
                detail=_text(executive_summary) or DEFAULT_EXECUTIVE_SUMMARY,
                recommendation=recommendations[0] if recommendations else DEFAULT_RECOMMENDATION,
            )],
        )
    ]
    if recommendations:
        sections.append(ReportSection(
            heading="권장사항",
            items=[
                ReportItem(label=f"권장사항 {index}", detail=text)
                for index, text in enumerate(recommendations, start=1)
            ],
        ))
    return sections


def parse_analysis(content: str) -> Dict[str, Any]:
    """Parse the completion body into a JSON object.

    Raises:
        ParseError: If the body is not JSON or not a JSON object
    """
    try:
        data = json.loads(content)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Model response is not valid JSON: {str(e)}") from e
    if not isinstance(data, dict):
        raise ParseError(f"Model response is a JSON {type(data).__name__}, expected an object")
    return data


class AnalysisInvoker:
    """Agent that sends composed prompts to the model and normalizes the answer."""

    def __init__(self, llm: Optional[BaseChatModel] = None):
        """Initialize the analysis invoker.

        Args:
            llm: Chat model to call; a JSON-mode Groq model by default
        """
        self.llm = llm or GroqChatModel(
            temperature=ANALYSIS_TEMPERATURE,
            response_format={"type": "json_object"},
        )

    async def invoke(self, prompts: ComposedPrompts, request: AnalysisRequest) -> AnalysisOutcome:
        """Run one analysis call. Single attempt, no retry.

        Args:
            prompts: Composed system and user instructions
            request: Validated analysis request

        Returns:
            Normalized analysis outcome

        Raises:
            InvocationFailure: If the call fails or the answer can not be parsed
        """
        messages = [
            SystemMessage(content=prompts.system_instruction),
            HumanMessage(content=prompts.user_instruction),
        ]

        try:
            message = await self.llm.ainvoke(messages)
        except MissingAPIKeyError as e:
            raise MissingCredentialError(str(e)) from e
        except LLMInvocationError as e:
            raise TransportError(str(e)) from e
        except Exception as e:
            raise TransportError(f"Model call failed: {str(e)}") from e

        data = parse_analysis(message.content)

        return AnalysisOutcome(
            risk_score=_coerce_risk_score(data.get("riskScore")),
            risk_breakdown=compute_risk_breakdown(request.analysis_focus),
            key_findings=normalize_findings(data.get("keyFindings"), request),
            sections=build_report_sections(data.get("executiveSummary"), data.get("recommendations")),
            negotiation_points=normalize_negotiation_points(data.get("negotiationPoints")),
        )
