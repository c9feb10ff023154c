"""Functions for persisting analyses and pipeline runs in Firestore.

Analyses are append-only: a new run always creates a new document.
"""

from typing import List, Tuple

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import FirestoreCaseLawAnalysis, FirestorePipelineRun, FirestoreSimilarCase

ANALYSES_COLLECTION = "case_law_analyses"
SIMILAR_CASES_COLLECTION = "similar_cases"
PATHWAYS_COLLECTION = "legal_pathways"


async def create_case_law_analysis(client: AsyncClient, analysis: FirestoreCaseLawAnalysis) -> str:
    """Stores a new analysis document.

    Args:
        client: The asynchronous Firestore client.
        analysis: The analysis to store.

    Returns:
        The analysis ID.
    """
    doc_ref = client.collection(ANALYSES_COLLECTION).document(analysis.analysis_id)
    await doc_ref.create(analysis.model_dump())
    return analysis.analysis_id


async def add_similar_cases(client: AsyncClient, analysis_id: str, similar_cases: List[FirestoreSimilarCase]) -> None:
    """Stores precedents under an analysis in a single batch."""
    if not similar_cases:
        return

    collection_ref = (
        client.collection(ANALYSES_COLLECTION).document(analysis_id).collection(SIMILAR_CASES_COLLECTION)
    )
    batch = client.batch()
    for similar_case in similar_cases:
        batch.set(collection_ref.document(), similar_case.model_dump())
    await batch.commit()


async def get_latest_case_law_analysis(
    client: AsyncClient, case_id: str, user_id: str
) -> Tuple[FirestoreCaseLawAnalysis, List[FirestoreSimilarCase]] | None:
    """Fetches the most recent analysis of a case made for a user, with its precedents.

    Returns:
        A tuple of (analysis, similar cases ordered by relevance), or None.
    """
    query = (
        client.collection(ANALYSES_COLLECTION)
        .where(filter=FieldFilter("case_id", "==", case_id))
        .where(filter=FieldFilter("user_id", "==", user_id))
        .order_by("created_at", direction="DESCENDING")
        .limit(1)
    )

    snapshots = [doc async for doc in query.stream()]
    if not snapshots:
        return None

    analysis = FirestoreCaseLawAnalysis(**snapshots[0].to_dict())

    similar_query = (
        client.collection(ANALYSES_COLLECTION)
        .document(analysis.analysis_id)
        .collection(SIMILAR_CASES_COLLECTION)
        .order_by("relevance_score", direction="DESCENDING")
    )
    similar_cases = [FirestoreSimilarCase(**doc.to_dict()) async for doc in similar_query.stream()]

    return analysis, similar_cases


async def create_pipeline_run(client: AsyncClient, run: FirestorePipelineRun) -> str:
    """Stores a synthesized multi-agent report."""
    await client.collection(PATHWAYS_COLLECTION).document(run.run_id).set(run.model_dump())
    return run.run_id
