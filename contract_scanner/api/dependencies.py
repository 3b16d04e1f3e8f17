from functools import lru_cache

from contract_scanner.agents.analysis_engine import AnalysisEngine
from contract_scanner.database.prompt_registry import PromptRegistry
from contract_scanner.database.prompt_store import create_prompt_store


@lru_cache
def get_prompt_registry() -> PromptRegistry:
    """Process-wide prompt registry."""
    return PromptRegistry(create_prompt_store())


@lru_cache
def get_analysis_engine() -> AnalysisEngine:
    return AnalysisEngine(registry=get_prompt_registry())
