from pydantic import BaseModel


class DeleteResponse(BaseModel):
    status: str
    document_id: int


class IngestionPoolStatus(BaseModel):
    running: bool
    active_workers: int
    queued: int


class HealthResponse(BaseModel):
    status: str
    version: str
    ingestion: IngestionPoolStatus
