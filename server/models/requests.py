from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    query: str
    top_k: int | None = Field(default=None, ge=1, le=50)
