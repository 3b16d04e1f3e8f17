import os

# Keep tests off the network and off the data directory
os.environ["GROQ_API_KEY"] = ""
os.environ["PROMPT_STORE_BACKEND"] = "memory"
os.environ["ANALYSIS_STRICT_MODE"] = "false"

import json
import random

import pytest
from langchain_core.messages import AIMessage

from contract_scanner.agents.analysis_engine import AnalysisEngine, FallbackPolicy
from contract_scanner.agents.analysis_invoker import AnalysisInvoker
from contract_scanner.agents.fallback_synthesizer import FallbackSynthesizer
from contract_scanner.database.prompt_registry import PromptRegistry
from contract_scanner.database.prompt_store import InMemoryPromptStore
from contract_scanner.schemas.analysis import AnalysisRequest


class FakeLLM:
    """Stands in for the chat model; returns a canned body or raises."""

    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.content)


MODEL_ANSWER = {
    "riskScore": 0.82,
    "keyFindings": [
        {
            "type": "unfavorable_terms",
            "title": "일방적 해지 조항",
            "severity": "high",
            "description": "갑만 임의로 계약을 해지할 수 있습니다.",
            "clauseLocation": "제9조",
            "recommendation": "쌍방 해지권 부여",
        }
    ],
    "negotiationPoints": [
        {
            "issue": "해지 조항",
            "priority": "high",
            "suggestedChange": "각 당사자는 30일 전 서면 통지로 계약을 해지할 수 있다.",
            "rationale": "해지권의 균형",
        }
    ],
    "executiveSummary": "해지 조항이 일방적으로 불리합니다.",
    "recommendations": ["해지 조항 재협상", "손해배상 한도 설정"],
}


def build_payload(**overrides):
    payload = {
        "contract_file": {
            "name": "service_agreement.pdf",
            "mimeType": "application/pdf",
            "size": 2048,
            "storageKey": "uploads/service_agreement.pdf",
        },
        "contract_type": "service",
        "analysis_focus": ["unfavorable_terms", "legal_risk"],
        "analysis_perspective": "client",
        "jurisdiction": "KR",
        "language": "ko",
        "report_format": "negotiation_points",
        "consent_privacy": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def payload_factory():
    return build_payload


@pytest.fixture
def request_factory():
    def factory(**overrides):
        return AnalysisRequest.model_validate(build_payload(**overrides))
    return factory


@pytest.fixture
def model_answer():
    return json.loads(json.dumps(MODEL_ANSWER))


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture
def registry():
    return PromptRegistry(InMemoryPromptStore())


@pytest.fixture
def engine_factory(registry):
    def factory(llm, policy=FallbackPolicy.FALLBACK, seed=7):
        return AnalysisEngine(
            registry=registry,
            invoker=AnalysisInvoker(llm=llm),
            synthesizer=FallbackSynthesizer(rng=random.Random(seed)),
            fallback_policy=policy,
        )
    return factory
