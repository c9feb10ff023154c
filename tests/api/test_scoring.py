from unittest.mock import AsyncMock, MagicMock

import pytest

from api.composer.scoring import MeritScoringEngine, deterministic_score
from api.errors import ReasoningBackendError, StageOutputError
from api.schemas.analysis import CaseContext, CaseRecord, EvidenceDigestEntry, outcome_for_score


def _context(evidence_count=0, description="Short description", venue="HRTO"):
    case = CaseRecord(id="case-1", user_id="user-1", venue=venue, province="ON", description=description)
    evidence = [EvidenceDigestEntry(name=f"e{i}") for i in range(evidence_count)]
    return CaseContext(case_id="case-1", case=case, evidence=evidence, evidence_count=evidence_count)


def _model_payload(**overrides):
    payload = {
        "meritScore": 72,
        "confidence": 0.8,
        "outcomePrediction": "favorable",
        "strengths": ["Written notices"],
        "weaknesses": ["No photos"],
        "recommendations": ["Gather receipts"],
        "legalBasis": "Residential Tenancies Act s. 20",
    }
    payload.update(overrides)
    return payload


def _reasoning_client(payload=None, side_effect=None):
    client = MagicMock()
    client.complete_structured = AsyncMock(return_value=payload, side_effect=side_effect)
    return client


# --- Deterministic formula ---

def test_scenario_a_minimal_case_is_unfavorable():
    result = deterministic_score(_context(evidence_count=0, description="short", venue="HRTO"), [])

    assert result.merit_score == 40
    assert result.confidence == 0.5
    assert result.outcome_prediction == "unfavorable"
    assert result.strengths == ["Case details provided"]
    assert result.weaknesses == ["Limited documentary evidence", "No comparable precedents were found"]
    assert result.legal_basis == "Analysis based on 0 similar cases from the CanLII database."


def test_scenario_b_strong_case_is_favorable(precedent_factory):
    precedents = precedent_factory(3)
    result = deterministic_score(_context(evidence_count=5, description="x" * 250, venue="LTB"), precedents)

    assert result.merit_score == 89
    assert result.confidence == 0.75
    assert result.outcome_prediction == "favorable"
    assert result.strengths == ["5 pieces of supporting evidence uploaded", "3 similar precedents identified"]
    assert result.weaknesses == []
    assert len(result.recommendations) == 3
    assert result.similar_cases == precedents


@pytest.mark.parametrize(
    "evidence,precedents,desc_len,venue",
    [(0, 0, 10, None), (2, 1, 201, "SMALL_CLAIMS"), (10, 10, 500, "LTB"), (4, 7, 200, "FAMILY"), (6, 0, 0, "LTB")],
)
def test_deterministic_score_matches_formula(precedent_factory, evidence, precedents, desc_len, venue):
    context = _context(evidence_count=evidence, description="d" * desc_len, venue=venue)
    result = deterministic_score(context, precedent_factory(precedents))

    expected = min(
        40
        + min(5 * evidence, 25)
        + min(3 * precedents, 15)
        + (10 if desc_len > 200 else 0)
        + (5 if venue in ("LTB", "SMALL_CLAIMS") else 0),
        95,
    )
    assert result.merit_score == expected
    assert result.confidence == (0.75 if evidence >= 3 else 0.5)
    assert result.outcome_prediction == outcome_for_score(expected)


def test_deterministic_score_is_capped_at_95(precedent_factory):
    result = deterministic_score(_context(evidence_count=10, description="y" * 300, venue="LTB"), precedent_factory(10))
    assert result.merit_score == 95


@pytest.mark.parametrize("score,outcome", [(0, "unfavorable"), (44, "unfavorable"), (45, "uncertain"), (64, "uncertain"), (65, "favorable"), (100, "favorable")])
def test_outcome_thresholds(score, outcome):
    assert outcome_for_score(score) == outcome


# --- Strategy selection ---

async def test_engine_without_reasoning_client_uses_formula(precedent_factory):
    engine = MeritScoringEngine(reasoning_client=None)

    result = await engine.score(_context(evidence_count=1), precedent_factory(2))

    assert result.merit_score == 40 + 5 + 6


async def test_engine_skips_model_when_no_precedents():
    client = _reasoning_client(_model_payload())
    engine = MeritScoringEngine(client)

    result = await engine.score(_context(), [])

    client.complete_structured.assert_not_awaited()
    assert result.merit_score == 40


async def test_engine_uses_model_result_with_precedents_attached(precedent_factory):
    precedents = precedent_factory(4)
    client = _reasoning_client(_model_payload())
    engine = MeritScoringEngine(client)

    result = await engine.score(_context(evidence_count=2), precedents)

    assert result.merit_score == 72
    assert result.confidence == 0.8
    assert result.outcome_prediction == "favorable"
    assert result.legal_basis == "Residential Tenancies Act s. 20"
    assert result.similar_cases == precedents

    system_prompt, user_prompt, schema_name, schema = client.complete_structured.await_args.args
    assert schema_name == "merit_assessment"
    assert schema["additionalProperties"] is False
    assert "CASE TYPE: HRTO" in user_prompt
    assert "Tenant 4 v. Landlord 4" in user_prompt


async def test_engine_only_sends_top_five_precedents(precedent_factory):
    client = _reasoning_client(_model_payload())

    await MeritScoringEngine(client).score(_context(), precedent_factory(8))

    user_prompt = client.complete_structured.await_args.args[1]
    assert "Tenant 5 v. Landlord 5" in user_prompt
    assert "Tenant 6 v. Landlord 6" not in user_prompt


async def test_engine_rounds_fractional_model_score(precedent_factory):
    client = _reasoning_client(_model_payload(meritScore=64.6, outcomePrediction="favorable"))

    result = await MeritScoringEngine(client).score(_context(), precedent_factory(1))

    assert result.merit_score == 65
    assert result.outcome_prediction == "favorable"


@pytest.mark.parametrize("raw,rounded,outcome", [(64.5, 65, "favorable"), (44.5, 45, "uncertain"), (2.5, 3, "unfavorable"), (99.5, 100, "favorable")])
async def test_engine_rounds_half_scores_up(precedent_factory, raw, rounded, outcome):
    client = _reasoning_client(_model_payload(meritScore=raw, outcomePrediction=outcome))

    result = await MeritScoringEngine(client).score(_context(), precedent_factory(1))

    assert result.merit_score == rounded
    assert result.outcome_prediction == outcome


async def test_engine_replaces_disagreeing_model_outcome(precedent_factory):
    client = _reasoning_client(_model_payload(meritScore=30, outcomePrediction="favorable"))

    result = await MeritScoringEngine(client).score(_context(), precedent_factory(1))

    assert result.merit_score == 30
    assert result.outcome_prediction == "unfavorable"


@pytest.mark.parametrize(
    "payload",
    [
        _model_payload(meritScore=140),
        _model_payload(meritScore=100.5),
        _model_payload(meritScore=float("nan")),
        _model_payload(confidence=1.5),
        _model_payload(outcomePrediction="maybe"),
        _model_payload(extra="not allowed"),
        {"meritScore": 70},
    ],
)
async def test_engine_falls_back_on_contract_violation(precedent_factory, payload):
    client = _reasoning_client(payload)

    result = await MeritScoringEngine(client).score(_context(evidence_count=1), precedent_factory(2))

    assert result.merit_score == 40 + 5 + 6
    assert result.legal_basis == "Analysis based on 2 similar cases from the CanLII database."


@pytest.mark.parametrize("error", [ReasoningBackendError("down"), StageOutputError("not json")])
async def test_engine_falls_back_on_upstream_failure(precedent_factory, error):
    client = _reasoning_client(side_effect=error)

    result = await MeritScoringEngine(client).score(_context(), precedent_factory(3))

    assert result.merit_score == 40 + 9
    assert result.outcome_prediction == "uncertain"
