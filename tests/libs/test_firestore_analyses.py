import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from libs.firestore.analyses import (
    ANALYSES_COLLECTION,
    PATHWAYS_COLLECTION,
    add_similar_cases,
    create_case_law_analysis,
    create_pipeline_run,
    get_latest_case_law_analysis,
)
from libs.firestore.cases import get_case, list_case_evidence, update_case_merit_score
from libs.models.firestore import FirestoreCaseLawAnalysis, FirestorePipelineRun, FirestoreSimilarCase


# Helper class to mock an async iterator, required for Firestore's `stream()`
class AsyncIterator:
    def __init__(self, items):
        self._items = iter(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        try:
            return next(self._items)
        except StopIteration:
            raise StopAsyncIteration


def _snapshot(data, doc_id=None, exists=True):
    snapshot = MagicMock()
    snapshot.exists = exists
    snapshot.id = doc_id
    snapshot.to_dict.return_value = data
    return snapshot


def _analysis(**overrides):
    data = {
        "analysis_id": "analysis-1",
        "case_id": "case-1",
        "user_id": "user-1",
        "merit_score": 72,
        "confidence": 0.75,
        "outcome_prediction": "favorable",
        "created_at": datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return FirestoreCaseLawAnalysis(**data)


def _similar_case(relevance):
    return FirestoreSimilarCase(
        analysis_id="analysis-1",
        title=f"Case {relevance}",
        citation=f"2023 ONLTB {relevance}",
        court="LTB",
        decision_date="2023-01-01",
        url="https://www.canlii.org/en/on/onltb",
        relevance_score=relevance,
    )


@pytest.fixture
def mock_client():
    client = MagicMock()
    collection = client.collection.return_value
    collection.document.return_value.create = AsyncMock()
    collection.document.return_value.set = AsyncMock()
    collection.document.return_value.update = AsyncMock()
    collection.document.return_value.get = AsyncMock()
    client.batch.return_value.commit = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_create_case_law_analysis_creates_new_document(mock_client):
    # Arrange
    analysis = _analysis()

    # Act
    analysis_id = await create_case_law_analysis(mock_client, analysis)

    # Assert
    assert analysis_id == "analysis-1"
    mock_client.collection.assert_called_with(ANALYSES_COLLECTION)
    mock_client.collection.return_value.document.assert_called_with("analysis-1")
    written = mock_client.collection.return_value.document.return_value.create.call_args.args[0]
    assert written["merit_score"] == 72
    assert written["user_id"] == "user-1"


@pytest.mark.asyncio
async def test_add_similar_cases_writes_one_batch(mock_client):
    await add_similar_cases(mock_client, "analysis-1", [_similar_case(100), _similar_case(95)])

    batch = mock_client.batch.return_value
    assert batch.set.call_count == 2
    batch.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_add_similar_cases_skips_empty_list(mock_client):
    await add_similar_cases(mock_client, "analysis-1", [])

    mock_client.batch.assert_not_called()


@pytest.mark.asyncio
async def test_get_latest_case_law_analysis_returns_analysis_with_precedents(mock_client):
    # Arrange
    collection = mock_client.collection.return_value
    latest_query = collection.where.return_value.where.return_value.order_by.return_value.limit.return_value
    latest_query.stream = MagicMock(return_value=AsyncIterator([_snapshot(_analysis().model_dump())]))
    similar_query = collection.document.return_value.collection.return_value.order_by.return_value
    similar_query.stream = MagicMock(
        return_value=AsyncIterator([_snapshot(_similar_case(100).model_dump()), _snapshot(_similar_case(95).model_dump())])
    )

    # Act
    result = await get_latest_case_law_analysis(mock_client, "case-1", "user-1")

    # Assert
    analysis, similar_cases = result
    assert analysis.analysis_id == "analysis-1"
    assert [sc.relevance_score for sc in similar_cases] == [100, 95]
    collection.where.return_value.where.return_value.order_by.assert_called_once_with(
        "created_at", direction="DESCENDING"
    )
    collection.where.return_value.where.return_value.order_by.return_value.limit.assert_called_once_with(1)


@pytest.mark.asyncio
async def test_get_latest_case_law_analysis_returns_none_without_documents(mock_client):
    collection = mock_client.collection.return_value
    latest_query = collection.where.return_value.where.return_value.order_by.return_value.limit.return_value
    latest_query.stream = MagicMock(return_value=AsyncIterator([]))

    assert await get_latest_case_law_analysis(mock_client, "case-1", "user-1") is None


@pytest.mark.asyncio
async def test_create_pipeline_run_stores_pathway(mock_client):
    run = FirestorePipelineRun(run_id="run-1", case_id="case-1", confidence_score=0.68, recommendation="File a T6")

    run_id = await create_pipeline_run(mock_client, run)

    assert run_id == "run-1"
    mock_client.collection.assert_called_with(PATHWAYS_COLLECTION)
    written = mock_client.collection.return_value.document.return_value.set.call_args.args[0]
    assert written["pathway_type"] == "multi_agent_analysis"
    assert written["confidence_score"] == 0.68


@pytest.mark.asyncio
async def test_get_case_uses_document_id_when_missing(mock_client):
    document = mock_client.collection.return_value.document.return_value
    document.get.return_value = _snapshot({"user_id": "user-1", "venue": "LTB"}, doc_id="case-1")

    case = await get_case(mock_client, "case-1")

    assert case.case_id == "case-1"
    assert case.venue == "LTB"
    mock_client.collection.assert_called_with("cases")


@pytest.mark.asyncio
async def test_get_case_returns_none_for_missing_document(mock_client):
    document = mock_client.collection.return_value.document.return_value
    document.get.return_value = _snapshot(None, exists=False)

    assert await get_case(mock_client, "missing") is None


@pytest.mark.asyncio
async def test_list_case_evidence(mock_client):
    query = mock_client.collection.return_value.where.return_value
    query.stream = MagicMock(
        return_value=AsyncIterator([_snapshot({"case_id": "case-1", "file_name": "lease.pdf", "tags": ["lease"]})])
    )

    evidence = await list_case_evidence(mock_client, "case-1")

    assert [e.file_name for e in evidence] == ["lease.pdf"]
    assert evidence[0].tags == ["lease"]


@pytest.mark.asyncio
async def test_update_case_merit_score_touches_only_that_field(mock_client):
    await update_case_merit_score(mock_client, "case-1", 81)

    document = mock_client.collection.return_value.document.return_value
    document.update.assert_awaited_once_with({"merit_score": 81})
