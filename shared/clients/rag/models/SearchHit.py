from typing import Any

from pydantic import BaseModel


class SearchHit(BaseModel):
    """A single similarity search match.

    Attributes:
        id:      Point id as string. Backends may return numeric ids.
        score:   Similarity score, higher is more relevant.
        payload: Stored payload of the point (see VectorPoint).
    """

    id: str
    score: float
    payload: dict[str, Any] = {}
