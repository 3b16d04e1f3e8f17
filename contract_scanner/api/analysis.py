from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
import logging

from contract_scanner.agents.analysis_engine import AnalysisEngine
from contract_scanner.agents.response_assembler import (
    INTERNAL_ERROR,
    INVOCATION_FAILED,
    VALIDATION_ERROR,
    ResponseAssembler,
)
from contract_scanner.api.dependencies import get_analysis_engine
from contract_scanner.schemas.analysis import (
    AnalysisFocus,
    AnalysisPerspective,
    AnalysisResponse,
    ContractType,
    Jurisdiction,
    Language,
    PartyRole,
    ReportFormat,
)

router = APIRouter()
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    VALIDATION_ERROR: 400,
    INVOCATION_FAILED: 502,
    INTERNAL_ERROR: 500,
}


def envelope_status_code(response: AnalysisResponse) -> int:
    """HTTP status for an envelope; consent errors are ordinary results."""
    for code in response.error_codes:
        if code in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[code]
    return 200


@router.post("", response_model=AnalysisResponse)
async def analyze_contract(request: Request, engine: AnalysisEngine = Depends(get_analysis_engine)):
    """Analyze a contract and return the risk report envelope."""
    try:
        try:
            payload = await request.json()
        except ValueError:
            payload = None

        result = await engine.analyze(payload)

    except Exception as e:
        logger.error(f"Error analyzing contract: {str(e)}")
        result = ResponseAssembler().internal_error(None)

    return JSONResponse(
        status_code=envelope_status_code(result),
        content=result.model_dump(mode="json", by_alias=True),
    )


@router.get("/options")
async def get_analysis_options():
    """List the accepted values of every enumerated request field."""
    return {
        "contract_types": [item.value for item in ContractType],
        "analysis_focus": [item.value for item in AnalysisFocus],
        "analysis_perspectives": [item.value for item in AnalysisPerspective],
        "jurisdictions": [item.value for item in Jurisdiction],
        "languages": [item.value for item in Language],
        "report_formats": [item.value for item in ReportFormat],
        "party_roles": [item.value for item in PartyRole],
    }
