from fastapi import APIRouter, Query, Request

from server.models.requests import QueryRequest
from shared.exceptions.errors import InvalidArgumentError
from shared.models.document import PageResult
from shared.models.query import QueryHistory, QueryResult

router = APIRouter(prefix="/api/query", tags=["query"])


@router.post("")
async def query_documents(request: Request, body: QueryRequest) -> QueryResult:
    """Answer a question from the indexed documents.

    Args:
        request (Request): FastAPI request (provides app.state.query_service).
        body (QueryRequest): JSON body with the question and an optional top_k.

    Returns:
        QueryResult: The answer with its source references.
    """
    if not body.query or not body.query.strip():
        raise InvalidArgumentError("Query must not be blank.")
    return await request.app.state.query_service.do_query(body.query, body.top_k)


@router.get("/history")
async def list_history(
    request: Request,
    page: int = Query(default=1),
    size: int = Query(default=20),
) -> PageResult[QueryHistory]:
    return await request.app.state.document_service.do_list_history(page, size)
