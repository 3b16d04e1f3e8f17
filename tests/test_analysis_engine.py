import asyncio
import json

import pytest

from contract_scanner.agents.analysis_engine import FallbackPolicy, resolve_contract_text
from contract_scanner.core.llm import LLMInvocationError
from contract_scanner.schemas.analysis import AnalysisStatus, Provenance


def analyze(engine, payload):
    return asyncio.run(engine.analyze(payload))


def test_model_failure_falls_back_to_synthesized_analysis(engine_factory, fake_llm_factory, payload_factory):
    engine = engine_factory(fake_llm_factory(error=LLMInvocationError("connection refused")))
    payload = payload_factory(
        analysis_focus=["unfavorable_terms", "legal_risk"],
        report_format="negotiation_points",
        consent_privacy=True,
    )

    response = analyze(engine, payload)

    assert response.status == AnalysisStatus.COMPLETED
    breakdown = response.summary.risk_breakdown
    assert breakdown.unfavorable_terms == 0.25
    assert breakdown.ambiguity == 0.03
    assert breakdown.legal_risk == 0.20
    assert len(response.negotiation_points) == 3
    assert response.meta.provenance == Provenance.FALLBACK
    assert not response.errors


def test_parse_failure_also_falls_back(engine_factory, fake_llm_factory, payload_factory):
    response = analyze(engine_factory(fake_llm_factory(content="<html>502</html>")), payload_factory())

    assert response.status == AnalysisStatus.COMPLETED
    assert response.meta.provenance == Provenance.FALLBACK


def test_missing_consent_short_circuits(engine_factory, fake_llm_factory, payload_factory):
    llm = fake_llm_factory(content="{}")

    response = analyze(engine_factory(llm), payload_factory(consent_privacy=False))

    assert response.status == AnalysisStatus.ERROR
    assert [(e.code, e.message) for e in response.errors] == [("NO_CONSENT", "개인정보 처리 동의가 필요합니다.")]
    assert response.summary.risk_score == 0
    assert response.summary.risk_breakdown.is_zero()
    assert response.job_id == ""
    assert llm.calls == []


def test_successful_analysis_uses_model_content(engine_factory, fake_llm_factory, model_answer, payload_factory):
    llm = fake_llm_factory(content=json.dumps(model_answer))

    response = analyze(engine_factory(llm), payload_factory(meta={"contract_title": "용역 계약", "currency": "KRW"}))

    assert response.status == AnalysisStatus.COMPLETED
    assert response.meta.provenance == Provenance.MODEL
    assert response.summary.risk_score == 0.82
    assert response.summary.key_findings[0].title == "일방적 해지 조항"
    assert response.job_id.startswith("scan_")
    assert response.meta.contract_overview.title == "용역 계약"
    assert response.meta.input_echo.notification.show_in_app is True


def test_registry_is_read_per_request(engine_factory, fake_llm_factory, model_answer, payload_factory, registry):
    llm = fake_llm_factory(content=json.dumps(model_answer))
    engine = engine_factory(llm)

    analyze(engine, payload_factory())
    registry.set_active("clause-comparison", True)
    analyze(engine, payload_factory())
    registry.set_active("clause-comparison", False)
    analyze(engine, payload_factory())

    systems = [call[0].content for call in llm.calls]
    assert systems[0] == registry.get("contract-analysis").content
    assert systems[1] == registry.get("clause-comparison").content
    assert "한국어" in systems[2] and systems[2] != systems[0]


def test_contract_text_reaches_user_prompt(engine_factory, fake_llm_factory, model_answer, payload_factory):
    llm = fake_llm_factory(content=json.dumps(model_answer))

    analyze(engine_factory(llm), payload_factory(contract_text="제7조 (위약금) 계약금의 200%"))

    assert "제7조 (위약금) 계약금의 200%" in llm.calls[0][1].content


def test_placeholder_text_names_the_file(request_factory):
    assert "[계약서 내용: service_agreement.pdf]" in resolve_contract_text(request_factory())


@pytest.mark.parametrize("overrides", [
    {"analysis_focus": []},
    {"analysis_focus": ["pricing"]},
    {"jurisdiction": "FR"},
    {"contract_type": "lease"},
    {"analysis_perspective": "owner"},
    {"language": "fr"},
    {"report_format": "memo"},
    {"meta": {"currency": "won"}},
])
def test_validation_errors(engine_factory, fake_llm_factory, payload_factory, overrides):
    llm = fake_llm_factory(content="{}")

    response = analyze(engine_factory(llm), payload_factory(**overrides))

    assert response.status == AnalysisStatus.ERROR
    assert response.errors[0].code == "VALIDATION_ERROR"
    assert response.errors[0].details
    assert llm.calls == []


def test_validation_error_details_name_the_field(engine_factory, fake_llm_factory, payload_factory):
    payload = payload_factory()
    del payload["report_format"]

    response = analyze(engine_factory(fake_llm_factory(content="{}")), payload)

    assert [d["field"] for d in response.errors[0].details] == ["report_format"]


@pytest.mark.parametrize("field", ["contract_type", "analysis_perspective", "jurisdiction", "language"])
def test_missing_enumerated_field_is_validation_error(engine_factory, fake_llm_factory, payload_factory, field):
    llm = fake_llm_factory(content="{}")
    payload = payload_factory()
    del payload[field]

    response = analyze(engine_factory(llm), payload)

    assert response.status == AnalysisStatus.ERROR
    assert [d["field"] for d in response.errors[0].details] == [field]
    assert response.meta.input_echo.jurisdiction == ("" if field == "jurisdiction" else "KR")
    assert llm.calls == []


def test_non_object_payload_is_validation_error(engine_factory, fake_llm_factory):
    response = analyze(engine_factory(fake_llm_factory(content="{}")), ["not", "a", "request"])
    assert response.errors[0].code == "VALIDATION_ERROR"


def test_strict_policy_surfaces_model_failure(engine_factory, fake_llm_factory, payload_factory):
    engine = engine_factory(fake_llm_factory(error=LLMInvocationError("timeout")), policy=FallbackPolicy.STRICT)

    response = analyze(engine, payload_factory())

    assert response.status == AnalysisStatus.ERROR
    assert response.errors[0].code == "INVOCATION_FAILED"


def test_unexpected_error_becomes_internal_error(engine_factory, fake_llm_factory, payload_factory):
    engine = engine_factory(fake_llm_factory(error=LLMInvocationError("down")))

    def explode(request):
        raise KeyError("boom")

    engine.synthesizer.synthesize = explode

    response = analyze(engine, payload_factory())

    assert response.status == AnalysisStatus.ERROR
    assert response.errors[0].code == "INTERNAL_ERROR"
    assert "boom" not in response.errors[0].message


@pytest.mark.parametrize("consent,llm_error", [(True, None), (True, "down"), (False, None)])
def test_error_status_iff_zero_breakdown_and_no_findings(
    engine_factory, fake_llm_factory, model_answer, payload_factory, consent, llm_error
):
    llm = fake_llm_factory(
        content=json.dumps(model_answer),
        error=LLMInvocationError(llm_error) if llm_error else None,
    )

    response = analyze(engine_factory(llm), payload_factory(consent_privacy=consent))

    is_error = response.status == AnalysisStatus.ERROR
    assert is_error == (response.summary.risk_breakdown.is_zero() and not response.summary.key_findings)
