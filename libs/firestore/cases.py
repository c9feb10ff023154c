"""Functions for reading case records and evidence from Firestore."""

from typing import List

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import FirestoreCase, FirestoreEvidence


async def get_case(client: AsyncClient, case_id: str) -> FirestoreCase | None:
    """Retrieves a case document from Firestore.

    Args:
        client: The asynchronous Firestore client.
        case_id: The case identifier (document ID).

    Returns:
        A FirestoreCase object if the case exists, otherwise None.
    """
    snapshot = await client.collection("cases").document(case_id).get()

    if not snapshot.exists:
        return None

    data = snapshot.to_dict()
    data.setdefault("case_id", snapshot.id)
    return FirestoreCase(**data)


async def list_case_evidence(client: AsyncClient, case_id: str) -> List[FirestoreEvidence]:
    """Fetches all evidence metadata attached to a case."""
    query = client.collection("evidence").where(filter=FieldFilter("case_id", "==", case_id))
    return [FirestoreEvidence(**doc.to_dict()) async for doc in query.stream()]


async def update_case_merit_score(client: AsyncClient, case_id: str, merit_score: int) -> None:
    """Writes back the merit score field of a case. No other field is touched."""
    await client.collection("cases").document(case_id).update({"merit_score": merit_score})
