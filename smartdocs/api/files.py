"""
File upload endpoint
Extracts text from supporting documents for use in generation prompts
"""

from fastapi import APIRouter, Depends, File, Request, UploadFile
from typing import List, Optional
import logging

from smartdocs.api.deps import get_current_user
from smartdocs.models.user import User
from smartdocs.core.exceptions import http_400_bad_request
from smartdocs.middleware.rate_limiter import upload_rate_limit
from smartdocs.services.file_service import (
    FileTooLargeError,
    UnsupportedFileError,
    extract_text,
    format_file_context,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload")
@upload_rate_limit()
async def upload_files(
    request: Request,
    files: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user)
):
    """
    Upload text, markdown, PDF or Word files and get their text back

    The files are not stored. Each result is formatted as
    "File: <name>\\nContent:\\n<text>" and can be passed as uploaded_files
    to POST /documents/generate.

    Raises:
        HTTPException: 400 when no file is sent, a file exceeds 10MB,
            a type is unsupported or text extraction fails
    """
    if not files:
        raise http_400_bad_request("No files uploaded")

    processed = []
    for upload in files:
        data = await upload.read()
        try:
            text = extract_text(upload.filename, upload.content_type, data)
        except (FileTooLargeError, UnsupportedFileError) as e:
            raise http_400_bad_request(str(e))
        except Exception as e:
            logger.error(f"Text extraction failed for {upload.filename}: {e}")
            raise http_400_bad_request(f"Could not read file {upload.filename}")

        processed.append(format_file_context(upload.filename, text))

    logger.info(f"User {current_user.id} uploaded {len(processed)} file(s)")
    return {
        "success": True,
        "files": processed,
        "message": f"Successfully processed {len(processed)} file(s)",
    }
