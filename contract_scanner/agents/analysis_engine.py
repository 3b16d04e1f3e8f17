import logging
from enum import Enum
from typing import Any, Mapping, Optional, Union
from pydantic import ValidationError

from contract_scanner.agents.analysis_invoker import AnalysisInvoker, InvocationFailure
from contract_scanner.agents.fallback_synthesizer import FallbackSynthesizer
from contract_scanner.agents.prompt_composer import PromptComposer
from contract_scanner.agents.response_assembler import INVOCATION_FAILED, ResponseAssembler
from contract_scanner.core.config import settings
from contract_scanner.database.prompt_registry import PromptRegistry
from contract_scanner.schemas.analysis import AnalysisRequest, AnalysisResponse, Provenance
from contract_scanner.schemas.prompts import PromptCategory

logger = logging.getLogger(__name__)

PLACEHOLDER_CONTRACT_TEXT = """[계약서 내용: {file_name}]

본 계약은 갑과 을 간의 서비스 제공에 관한 계약입니다.

제1조 (목적)
본 계약은 을이 갑에게 제공하는 서비스의 내용과 조건을 정함을 목적으로 한다.

제2조 (서비스 내용)
을은 갑에게 다음과 같은 서비스를 제공한다.
1. 컨설팅 서비스
2. 기술 지원

제3조 (계약 기간)
본 계약은 2024년 1월 1일부터 2024년 12월 31일까지 유효하다.

제4조 (대금 지급)
갑은 을에게 월 10,000,000원을 매월 말일에 지급한다.

제5조 (책임의 제한)
을은 어떠한 경우에도 간접손해, 특별손해에 대해 책임을 지지 않는다.

제6조 (기밀유지)
양 당사자는 본 계약과 관련하여 알게 된 상대방의 기밀정보를 제3자에게 누설하지 않는다."""


class FallbackPolicy(str, Enum):
    """What to do when the model call fails."""
    FALLBACK = "fallback"
    STRICT = "strict"


def resolve_contract_text(request: AnalysisRequest) -> str:
    """Text of the contract to analyze.

    Extraction happens upstream; without extracted text a placeholder body
    naming the uploaded file is used.
    """
    if request.contract_text and request.contract_text.strip():
        return request.contract_text
    return PLACEHOLDER_CONTRACT_TEXT.format(file_name=request.contract_file.name)


def _validation_details(error: ValidationError) -> list:
    return [
        {
            "field": ".".join(str(part) for part in detail["loc"]),
            "message": detail["msg"],
            "type": detail["type"],
        }
        for detail in error.errors()
    ]


class AnalysisEngine:
    """Orchestrates one contract analysis from raw request to response envelope.

    Every request goes through validation, the consent check, prompt
    composition, the model call, and assembly. Model failures are handed to
    the fallback synthesizer (or reported, under the strict policy), so the
    caller always gets an envelope and never an exception.
    """

    def __init__(
        self,
        registry: PromptRegistry,
        invoker: Optional[AnalysisInvoker] = None,
        synthesizer: Optional[FallbackSynthesizer] = None,
        composer: Optional[PromptComposer] = None,
        assembler: Optional[ResponseAssembler] = None,
        fallback_policy: Optional[FallbackPolicy] = None,
    ):
        """Initialize the analysis engine.

        Args:
            registry: Prompt registry, read on every request
            invoker: Model invoker
            synthesizer: Fallback synthesizer
            composer: Prompt composer
            assembler: Response assembler
            fallback_policy: Failure policy; taken from ANALYSIS_STRICT_MODE if omitted
        """
        self.registry = registry
        self.invoker = invoker or AnalysisInvoker()
        self.synthesizer = synthesizer or FallbackSynthesizer()
        self.composer = composer or PromptComposer()
        self.assembler = assembler or ResponseAssembler()
        if fallback_policy is None:
            fallback_policy = FallbackPolicy.STRICT if settings.ANALYSIS_STRICT_MODE else FallbackPolicy.FALLBACK
        self.fallback_policy = fallback_policy

    async def analyze(self, payload: Union[AnalysisRequest, Mapping[str, Any]]) -> AnalysisResponse:
        """Analyze a contract.

        Args:
            payload: Validated request or raw request mapping

        Returns:
            Completed or error envelope
        """
        # Validating
        try:
            request = payload if isinstance(payload, AnalysisRequest) else AnalysisRequest.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Rejected analysis request: {e.error_count()} validation error(s)")
            return self.assembler.validation_error(payload, _validation_details(e))

        try:
            if not request.consent_privacy:
                logger.info("Analysis request without privacy consent")
                return self.assembler.consent_error(request)
            return await self._run(request)
        except Exception as e:
            logger.exception(f"Unexpected error analyzing contract: {str(e)}")
            return self.assembler.internal_error(payload, request)

    async def _run(self, request: AnalysisRequest) -> AnalysisResponse:
        # Composing: the registry is read per request, never cached
        active_prompt = self.registry.get_active(PromptCategory.ANALYSIS)
        prompts = self.composer.compose(request, resolve_contract_text(request), active_prompt)
        logger.info(
            f"Analyzing {request.contract_file.name} "
            f"(system prompt: {active_prompt.id if active_prompt else 'built-in'})"
        )

        # Invoking
        try:
            outcome = await self.invoker.invoke(prompts, request)
        except InvocationFailure as e:
            logger.warning(f"Model analysis failed ({e.code}): {str(e)}")
            if self.fallback_policy == FallbackPolicy.STRICT:
                return self.assembler.failure_error(request, INVOCATION_FAILED, str(e))
            # Synthesizing
            outcome = self.synthesizer.synthesize(request)
            return self.assembler.assemble(request, outcome, Provenance.FALLBACK)

        # Assembling
        return self.assembler.assemble(request, outcome, Provenance.MODEL)
