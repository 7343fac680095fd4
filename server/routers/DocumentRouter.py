from fastapi import APIRouter, File, Query, Request, UploadFile

from server.models.responses import DeleteResponse
from shared.exceptions.errors import PayloadTooLargeError
from shared.models.document import Document, DocumentDetail, PageResult

router = APIRouter(prefix="/api/documents", tags=["documents"])


async def read_upload(file: UploadFile, max_size: int) -> bytes:
    """Read an upload without holding more than max_size + 1 bytes in memory.

    Raises:
        PayloadTooLargeError: If the declared or the actual size exceeds max_size.
    """
    if file.size is not None and file.size > max_size:
        raise PayloadTooLargeError(f"File '{file.filename}' is {file.size} bytes, the limit is {max_size} bytes.")
    data = await file.read(max_size + 1)
    if len(data) > max_size:
        raise PayloadTooLargeError(f"File '{file.filename}' exceeds the limit of {max_size} bytes.")
    return data


@router.post("", status_code=201)
async def upload_document(request: Request, file: UploadFile = File(...)) -> Document:
    """Upload a document and schedule its ingestion.

    Args:
        request (Request): FastAPI request (provides app.state.document_service).
        file (UploadFile): Multipart file field "file".

    Returns:
        Document: The created document, status PROCESSING.
    """
    document_service = request.app.state.document_service
    data = await read_upload(file, document_service.max_file_size)
    return await document_service.do_upload(file.filename, file.content_type, data)


@router.get("")
async def list_documents(
    request: Request,
    page: int = Query(default=1),
    size: int = Query(default=10),
) -> PageResult[Document]:
    return await request.app.state.document_service.do_list_documents(page, size)


@router.get("/{document_id}")
async def get_document(request: Request, document_id: int) -> DocumentDetail:
    return await request.app.state.document_service.do_get_document(document_id)


@router.delete("/{document_id}")
async def delete_document(request: Request, document_id: int) -> DeleteResponse:
    await request.app.state.document_service.do_delete_document(document_id)
    return DeleteResponse(status="deleted", document_id=document_id)
