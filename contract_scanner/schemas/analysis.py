from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional
from enum import Enum


class ContractType(str, Enum):
    """Types of contracts that can be analyzed."""
    AUTO = "auto"
    GENERAL_SALE = "general_sale"
    SERVICE = "service"
    REAL_ESTATE = "real_estate"
    EMPLOYMENT = "employment"
    NDA = "nda"
    OTHER = "other"


class AnalysisFocus(str, Enum):
    """Risk categories a request can ask the analysis to emphasize."""
    UNFAVORABLE_TERMS = "unfavorable_terms"
    AMBIGUITY = "ambiguity"
    LEGAL_RISK = "legal_risk"
    PERFORMANCE_TIMELINE = "performance_timeline"
    TERMINATION_LIQUIDATED_DAMAGES = "termination_liquidated_damages"


class AnalysisPerspective(str, Enum):
    """Stance from which risk is framed."""
    NEUTRAL = "neutral"
    PARTY_A = "party_a"
    PARTY_B = "party_b"
    BUYER = "buyer"
    SELLER = "seller"
    SERVICE_PROVIDER = "service_provider"
    CLIENT = "client"
    EMPLOYER = "employer"
    EMPLOYEE = "employee"


class Jurisdiction(str, Enum):
    KR = "KR"
    US = "US"
    EU = "EU"
    JP = "JP"
    CN = "CN"
    OTHERS = "OTHERS"


class Language(str, Enum):
    AUTO = "auto"
    KO = "ko"
    EN = "en"
    JA = "ja"
    ZH = "zh"


class ReportFormat(str, Enum):
    """Report layouts."""
    BRIEF = "brief"
    DETAILED = "detailed"
    NEGOTIATION_POINTS = "negotiation_points"


class PartyRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    SERVICE_PROVIDER = "service_provider"
    CLIENT = "client"
    EMPLOYER = "employer"
    EMPLOYEE = "employee"
    OTHER = "other"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AnalysisStatus(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"


class Provenance(str, Enum):
    """Where the analytical content of a completed envelope came from."""
    MODEL = "model"
    FALLBACK = "fallback"


# Request

class FileInfo(BaseModel):
    """Reference to an uploaded file. Opaque to the analysis core."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    mime_type: str = Field(alias="mimeType")
    size: int = Field(ge=0)
    storage_key: str = Field(alias="storageKey")


class NotificationSettings(BaseModel):
    show_in_app: bool = True
    email: Optional[str] = None


class ContractMeta(BaseModel):
    """Descriptive metadata the user may supply about the contract."""
    contract_title: Optional[str] = Field(default=None, max_length=200)
    party_role: Optional[PartyRole] = None
    counterparty_name: Optional[str] = Field(default=None, max_length=200)
    effective_date: Optional[str] = None
    end_date: Optional[str] = None
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Z]{3}$")
    total_value: Optional[float] = Field(default=None, ge=0)


class AnalysisRequest(BaseModel):
    """A contract analysis request."""
    contract_file: FileInfo
    contract_type: ContractType
    analysis_focus: List[AnalysisFocus] = Field(min_length=1)
    analysis_perspective: AnalysisPerspective
    jurisdiction: Jurisdiction
    language: Language
    report_format: ReportFormat
    reference_docs: Optional[List[FileInfo]] = None
    additional_terms_text: Optional[str] = Field(default=None, max_length=5000)
    meta: Optional[ContractMeta] = None
    notification: Optional[NotificationSettings] = None
    consent_privacy: bool = False
    # Text extracted upstream; extraction itself happens outside this service
    contract_text: Optional[str] = None

    @field_validator("analysis_focus")
    @classmethod
    def dedupe_focus(cls, value: List[AnalysisFocus]) -> List[AnalysisFocus]:
        return list(dict.fromkeys(value))


# Analysis content

class ClauseLocation(BaseModel):
    page: Optional[int] = None
    section: Optional[str] = None
    paragraph: Optional[str] = None


class Finding(BaseModel):
    """A key finding about the contract."""
    type: AnalysisFocus
    title: str
    severity: Severity
    confidence: Confidence
    reason: str
    clause_excerpt: Optional[str] = None
    clause_location: ClauseLocation = Field(default_factory=ClauseLocation)


class ReportItem(BaseModel):
    label: str
    detail: str
    recommendation: Optional[str] = None
    suggested_rewrite: Optional[str] = None


class ReportSection(BaseModel):
    heading: str
    items: List[ReportItem] = []


class NegotiationPoint(BaseModel):
    """A suggested point to raise with the counterparty."""
    issue: str
    impact: str = ""
    priority: Priority
    suggested_rewrite: str
    rationale: str


class AlignmentMismatch(BaseModel):
    topic: str
    deviation: str
    risk: str
    suggested_fix: str


class ReferenceAlignment(BaseModel):
    has_reference: bool
    notes: str
    mismatches: List[AlignmentMismatch] = []


class RiskBreakdown(BaseModel):
    """Per-category risk contribution, each in [0, 1]."""
    unfavorable_terms: float = Field(ge=0.0, le=1.0)
    ambiguity: float = Field(ge=0.0, le=1.0)
    legal_risk: float = Field(ge=0.0, le=1.0)
    performance_timeline: float = Field(ge=0.0, le=1.0)
    termination_liquidated_damages: float = Field(ge=0.0, le=1.0)

    def is_zero(self) -> bool:
        return not any(self.model_dump().values())


class AnalysisOutcome(BaseModel):
    """Analytical content produced by the model or by the fallback synthesizer."""
    risk_score: float = Field(ge=0.0, le=1.0)
    risk_breakdown: RiskBreakdown
    key_findings: List[Finding] = []
    sections: List[ReportSection] = []
    negotiation_points: Optional[List[NegotiationPoint]] = None
    alignment_with_reference: Optional[ReferenceAlignment] = None


class ComposedPrompts(BaseModel):
    """System and user instructions for one analysis call."""
    system_instruction: str
    user_instruction: str


# Response envelope

class RiskSummary(BaseModel):
    risk_score: float = Field(ge=0.0, le=1.0)
    risk_breakdown: RiskBreakdown
    key_findings: List[Finding] = []


class Report(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    format: ReportFormat
    sections: List[ReportSection] = []
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")


class InputEcho(BaseModel):
    """Verbatim copy of the request's classification fields."""
    contract_type: str = ""
    jurisdiction: str = ""
    language: str = ""
    analysis_focus: List[str] = []
    notification: NotificationSettings = Field(default_factory=NotificationSettings)


class OverviewParties(BaseModel):
    this_party_role: Optional[str] = None
    counterparty_name: Optional[str] = None


class OverviewTerm(BaseModel):
    effective_date: Optional[str] = None
    end_date: Optional[str] = None


class OverviewValue(BaseModel):
    currency: Optional[str] = None
    total_value: Optional[float] = None


class ContractOverview(BaseModel):
    title: Optional[str] = None
    parties: Optional[OverviewParties] = None
    term: Optional[OverviewTerm] = None
    value: Optional[OverviewValue] = None


class ResponseMeta(BaseModel):
    input_echo: InputEcho
    contract_overview: ContractOverview = Field(default_factory=ContractOverview)
    disclaimer: str = ""
    provenance: Optional[Provenance] = None


class AnalysisError(BaseModel):
    code: str
    message: str
    details: Optional[List[Dict[str, Any]]] = None


class AnalysisResponse(BaseModel):
    """Envelope returned for every analysis request."""
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(alias="jobId")
    status: AnalysisStatus
    summary: RiskSummary
    report: Report
    negotiation_points: Optional[List[NegotiationPoint]] = None
    alignment_with_reference: Optional[ReferenceAlignment] = None
    meta: ResponseMeta
    errors: Optional[List[AnalysisError]] = None

    @model_validator(mode="after")
    def check_status_consistency(self) -> "AnalysisResponse":
        if self.status == AnalysisStatus.ERROR:
            if self.summary.risk_score != 0 or not self.summary.risk_breakdown.is_zero():
                raise ValueError("error envelopes must carry a zero risk summary")
            if self.summary.key_findings or self.report.sections:
                raise ValueError("error envelopes must not carry findings or report sections")
            if not self.errors:
                raise ValueError("error envelopes must list at least one error")
        elif self.errors:
            raise ValueError("completed envelopes must not carry errors")
        return self

    @property
    def error_codes(self) -> List[str]:
        return [error.code for error in self.errors or []]
