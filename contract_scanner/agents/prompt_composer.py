import logging
from typing import Optional
from langchain_core.prompts import ChatPromptTemplate

from contract_scanner.schemas.analysis import AnalysisRequest, ComposedPrompts
from contract_scanner.schemas.prompts import PromptDefinition

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are an expert legal contract analyst. Analyze the provided contract and identify risks, ambiguities, and unfavorable terms.
Provide your analysis in Korean (한국어) with the following structure:

1. 위험 점수 (0-1 scale)
2. 주요 발견사항 (3-5 key findings with severity)
3. 협상 포인트
4. 권장사항

Focus on practical business risks and legal implications."""

PERSPECTIVE_INSTRUCTIONS = {
    "neutral": "중립적 관점에서 객관적으로 분석하세요.",
    "party_a": "갑(계약서 상 첫 번째 당사자)의 입장에서 분석하세요. 갑에게 불리한 조항과 위험 요소를 중점적으로 식별하세요.",
    "party_b": "을(계약서 상 두 번째 당사자)의 입장에서 분석하세요. 을에게 불리한 조항과 위험 요소를 중점적으로 식별하세요.",
    "buyer": "구매자 입장에서 분석하세요. 구매자에게 불리한 조건과 리스크를 중점적으로 검토하세요.",
    "seller": "판매자 입장에서 분석하세요. 판매자에게 불리한 조건과 리스크를 중점적으로 검토하세요.",
    "service_provider": "서비스 제공자 입장에서 분석하세요. 서비스 제공자에게 불리한 조건과 리스크를 중점적으로 검토하세요.",
    "client": "클라이언트 입장에서 분석하세요. 클라이언트에게 불리한 조건과 리스크를 중점적으로 검토하세요.",
    "employer": "고용주 입장에서 분석하세요. 고용주에게 불리한 조건과 리스크를 중점적으로 검토하세요.",
    "employee": "근로자 입장에서 분석하세요. 근로자에게 불리한 조건과 리스크를 중점적으로 검토하세요.",
}

RESPONSE_FORMAT_INSTRUCTION = """위 계약서를 분석하여 다음 항목들을 JSON 형식으로 응답해주세요:
{
  "riskScore": 0.0-1.0,
  "keyFindings": [
    {
      "type": "string",
      "title": "string",
      "severity": "high|medium|low",
      "description": "string",
      "clauseLocation": "string",
      "recommendation": "string"
    }
  ],
  "negotiationPoints": [
    {
      "issue": "string",
      "priority": "high|medium|low",
      "suggestedChange": "string",
      "rationale": "string"
    }
  ],
  "executiveSummary": "string",
  "recommendations": ["string"]
}"""

USER_TEMPLATE = """계약서 분석 요청:
- 계약서 유형: {contract_type}
- 분석 관점: {perspective}
- 분석 초점: {focus}
- 관할: {jurisdiction}
- 언어: {language}
- 보고서 형식: {report_format}

분석 관점 지침: {perspective_instruction}
{additional_terms}
계약서 내용:
{contract_text}

{response_format}"""


def get_perspective_instruction(perspective: str) -> str:
    """Guidance sentence for a perspective tag; neutral for unknown tags."""
    return PERSPECTIVE_INSTRUCTIONS.get(perspective, PERSPECTIVE_INSTRUCTIONS["neutral"])


class PromptComposer:
    """Builds the system and user instructions for an analysis request.

    Composition is pure: the caller passes in the active analysis prompt it
    read from the registry, and no I/O happens here.
    """

    def __init__(self):
        """Initialize the prompt composer."""
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", "{system_instruction}"),
            ("user", USER_TEMPLATE),
        ])

    def compose(
        self,
        request: AnalysisRequest,
        contract_text: str,
        active_prompt: Optional[PromptDefinition] = None,
    ) -> ComposedPrompts:
        """Compose the prompts for one request.

        Args:
            request: Validated analysis request
            contract_text: Full text of the contract
            active_prompt: Active "analysis" prompt, if any

        Returns:
            System and user instructions
        """
        if active_prompt is not None and active_prompt.content.strip():
            system_instruction = active_prompt.content
        else:
            logger.debug("No active analysis prompt, using built-in system prompt")
            system_instruction = DEFAULT_SYSTEM_PROMPT

        additional_terms = ""
        if request.additional_terms_text:
            additional_terms = f"\n추가 조건:\n{request.additional_terms_text}\n"

        system_message, user_message = self.prompt.format_messages(
            system_instruction=system_instruction,
            contract_type=request.contract_type.value,
            perspective=request.analysis_perspective.value,
            focus=", ".join(tag.value for tag in request.analysis_focus),
            jurisdiction=request.jurisdiction.value,
            language=request.language.value,
            report_format=request.report_format.value,
            perspective_instruction=get_perspective_instruction(request.analysis_perspective.value),
            additional_terms=additional_terms,
            contract_text=contract_text,
            response_format=RESPONSE_FORMAT_INSTRUCTION,
        )

        return ComposedPrompts(
            system_instruction=system_message.content,
            user_instruction=user_message.content,
        )
