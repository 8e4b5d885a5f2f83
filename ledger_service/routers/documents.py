from fastapi import APIRouter, Depends, File, UploadFile, Response

from ..errors import InvalidFieldError, NotFoundError
from ..logger import get_logger
from ..security import get_user
from ..storage import StorageBackend, get_storage, guess_content_type, store_upload, validate_upload

router = APIRouter(tags=["documents"])
log = get_logger("documents")

@router.post("/upload")
async def upload(
    file: UploadFile = File(...),
    user=Depends(get_user),
    storage: StorageBackend = Depends(get_storage),
):
    if not file.filename:
        raise InvalidFieldError("file", "File is required")
    # reject on the spooled size before pulling the body into memory
    validate_upload(file.content_type, file.size or 0)
    data = await file.read()
    result = store_upload(storage, data, file.filename, file.content_type)
    log.info(f"Uploaded document: url={result['url']} user_id={user} size={len(data)}")
    return result

@router.get("/documents/{key:path}")
def get_document(key: str, user=Depends(get_user), storage: StorageBackend = Depends(get_storage)):
    try:
        data = storage.read_file(key)
    except FileNotFoundError:
        log.warning(f"Document not found: key={key} user_id={user}")
        raise NotFoundError("File not found")
    return Response(
        content=data,
        media_type=guess_content_type(key),
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
