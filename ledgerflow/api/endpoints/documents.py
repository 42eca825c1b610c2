from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from ledgerflow.api.state import get_facade
from ledgerflow.common.logging_config import get_logger
from ledgerflow.facade import BookkeepingFacade
from ledgerflow.parsing.exceptions import DocumentError, DocumentTooLarge

logger = get_logger(__name__)
router = APIRouter()

EXTENSION_MIME_TYPES = {
    '.csv': 'text/csv',
    '.xls': 'application/vnd.ms-excel',
    '.xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    '.pdf': 'application/pdf',
    '.txt': 'text/plain',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
}


def resolve_mime_type(filename: Optional[str], content_type: Optional[str]) -> str:
    """Declared content type, or a guess from the extension for generic uploads."""
    if content_type and content_type != 'application/octet-stream':
        return content_type
    suffix = '.' + (filename or '').rsplit('.', 1)[-1].lower() if '.' in (filename or '') else ''
    return EXTENSION_MIME_TYPES.get(suffix, content_type or '')


@router.post("/process")
async def process_document(
    file: UploadFile = File(...),
    password: Optional[str] = Form(None),
    facade: BookkeepingFacade = Depends(get_facade),
):
    """
    Extract transactions from an uploaded statement.
    Password problems and unreadable files return 400, oversized files 413.
    """
    buffer = await file.read()
    mime_type = resolve_mime_type(file.filename, file.content_type)
    logger.info(f"Document upload: {file.filename}", mime_type=mime_type, size=len(buffer))

    try:
        result = facade.process_document(buffer, mime_type, file.filename, password or None)
    except DocumentTooLarge as e:
        raise HTTPException(status_code=413, detail=e.to_dict())
    except DocumentError as e:
        logger.warning(f"Document rejected: {e}", code=e.code, filename=file.filename)
        raise HTTPException(status_code=400, detail=e.to_dict())

    if result.requires_password:
        raise HTTPException(status_code=400, detail={
            'code': 'PASSWORD_REQUIRED',
            'message': 'This PDF is password protected',
            'filename': file.filename,
            'requires_password': True,
        })

    return result.to_dict()
