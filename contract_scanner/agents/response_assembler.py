import time
import uuid
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from contract_scanner.agents.risk_breakdown import zero_risk_breakdown
from contract_scanner.schemas.analysis import (
    AnalysisError,
    AnalysisOutcome,
    AnalysisRequest,
    AnalysisResponse,
    AnalysisStatus,
    ContractOverview,
    InputEcho,
    NotificationSettings,
    OverviewParties,
    OverviewTerm,
    OverviewValue,
    Provenance,
    Report,
    ReportFormat,
    ResponseMeta,
    RiskSummary,
)

logger = logging.getLogger(__name__)

DISCLAIMER = "본 분석은 AI 기반 참고 자료이며, 법적 조언이 아닙니다. 중요한 결정 전 전문가 상담을 권장합니다."

NO_CONSENT = "NO_CONSENT"
VALIDATION_ERROR = "VALIDATION_ERROR"
INVOCATION_FAILED = "INVOCATION_FAILED"
INTERNAL_ERROR = "INTERNAL_ERROR"

NO_CONSENT_MESSAGE = "개인정보 처리 동의가 필요합니다."
VALIDATION_MESSAGE = "Invalid request data"
INTERNAL_ERROR_MESSAGE = "Failed to analyze contract"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    digits = ""
    while True:
        number, remainder = divmod(number, 36)
        digits = _BASE36[remainder] + digits
        if not number:
            return digits


def new_job_id() -> str:
    """Time-based job id with a short random suffix against same-millisecond collisions."""
    return f"scan_{_base36(int(time.time() * 1000))}{uuid.uuid4().hex[:4]}"


def _enum_value(value: Any) -> str:
    return getattr(value, "value", value)


class ResponseAssembler:
    """Wraps analysis content, or an error, into the response envelope."""

    def input_echo(self, request: AnalysisRequest) -> InputEcho:
        return InputEcho(
            contract_type=request.contract_type.value,
            jurisdiction=request.jurisdiction.value,
            language=request.language.value,
            analysis_focus=[tag.value for tag in request.analysis_focus],
            notification=request.notification or NotificationSettings(show_in_app=True),
        )

    def contract_overview(self, request: AnalysisRequest) -> ContractOverview:
        meta = request.meta
        if meta is None:
            return ContractOverview(
                title=request.contract_file.name,
                parties=OverviewParties(),
                term=OverviewTerm(),
                value=OverviewValue(),
            )
        return ContractOverview(
            title=meta.contract_title or request.contract_file.name,
            parties=OverviewParties(
                this_party_role=_enum_value(meta.party_role) if meta.party_role else None,
                counterparty_name=meta.counterparty_name,
            ),
            term=OverviewTerm(effective_date=meta.effective_date, end_date=meta.end_date),
            value=OverviewValue(currency=meta.currency, total_value=meta.total_value),
        )

    def assemble(
        self,
        request: AnalysisRequest,
        outcome: AnalysisOutcome,
        provenance: Provenance,
    ) -> AnalysisResponse:
        """Build a completed envelope around an analysis outcome.

        Args:
            request: Validated analysis request
            outcome: Content from the model or the fallback synthesizer
            provenance: Which of the two produced the content

        Returns:
            Completed analysis response
        """
        return AnalysisResponse(
            job_id=new_job_id(),
            status=AnalysisStatus.COMPLETED,
            summary=RiskSummary(
                risk_score=outcome.risk_score,
                risk_breakdown=outcome.risk_breakdown,
                key_findings=outcome.key_findings,
            ),
            report=Report(format=request.report_format, sections=outcome.sections),
            negotiation_points=outcome.negotiation_points,
            alignment_with_reference=outcome.alignment_with_reference,
            meta=ResponseMeta(
                input_echo=self.input_echo(request),
                contract_overview=self.contract_overview(request),
                disclaimer=DISCLAIMER,
                provenance=provenance,
            ),
        )

    def _error_envelope(
        self,
        report_format: ReportFormat,
        input_echo: InputEcho,
        errors: List[AnalysisError],
        job_id: str = "",
    ) -> AnalysisResponse:
        return AnalysisResponse(
            job_id=job_id,
            status=AnalysisStatus.ERROR,
            summary=RiskSummary(risk_score=0.0, risk_breakdown=zero_risk_breakdown(), key_findings=[]),
            report=Report(format=report_format, sections=[]),
            meta=ResponseMeta(input_echo=input_echo, contract_overview=ContractOverview(), disclaimer=""),
            errors=errors,
        )

    def consent_error(self, request: AnalysisRequest) -> AnalysisResponse:
        """Error envelope for a request without privacy consent."""
        return self._error_envelope(
            request.report_format,
            self.input_echo(request),
            [AnalysisError(code=NO_CONSENT, message=NO_CONSENT_MESSAGE)],
        )

    def failure_error(self, request: AnalysisRequest, code: str, message: str) -> AnalysisResponse:
        """Error envelope for a request that passed validation but could not be analyzed."""
        return self._error_envelope(
            request.report_format,
            self.input_echo(request),
            [AnalysisError(code=code, message=message)],
            job_id=new_job_id(),
        )

    def _echo_raw_payload(self, payload: Any) -> Tuple[ReportFormat, InputEcho]:
        """Best-effort echo of a payload that could not be validated."""
        payload = payload if isinstance(payload, Mapping) else {}

        try:
            report_format = ReportFormat(payload.get("report_format"))
        except ValueError:
            report_format = ReportFormat.DETAILED

        def raw(key: str) -> str:
            value = payload.get(key)
            return value if isinstance(value, str) else ""

        focus = payload.get("analysis_focus")
        echo = InputEcho(
            contract_type=raw("contract_type"),
            jurisdiction=raw("jurisdiction"),
            language=raw("language"),
            analysis_focus=[tag for tag in focus if isinstance(tag, str)] if isinstance(focus, list) else [],
        )
        return report_format, echo

    def validation_error(self, payload: Any, details: List[Dict[str, Any]]) -> AnalysisResponse:
        """Error envelope for a payload that failed validation."""
        report_format, echo = self._echo_raw_payload(payload)
        return self._error_envelope(
            report_format,
            echo,
            [AnalysisError(code=VALIDATION_ERROR, message=VALIDATION_MESSAGE, details=details)],
        )

    def internal_error(self, payload: Any, request: Optional[AnalysisRequest] = None) -> AnalysisResponse:
        """Error envelope for an unexpected failure; the message stays generic."""
        if request is not None:
            return self.failure_error(request, INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)
        report_format, echo = self._echo_raw_payload(payload)
        return self._error_envelope(
            report_format,
            echo,
            [AnalysisError(code=INTERNAL_ERROR, message=INTERNAL_ERROR_MESSAGE)],
            job_id=new_job_id(),
        )
