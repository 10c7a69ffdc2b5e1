from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from field_expenses.core.config import Settings
from field_expenses.models.user import ActorContext
from field_expenses.routers.deps import get_app_settings, get_approved_actor
from field_expenses.services.blob_store import BlobStore, LocalBlobStore

router = APIRouter(prefix="/receipts", tags=["receipts"])


class ReceiptOut(BaseModel):
    image_ref: str


def get_blob_store(settings: Settings = Depends(get_app_settings)) -> BlobStore:
    return LocalBlobStore(settings.receipts_dir, settings.receipts_base_url)


@router.post(
    "/",
    response_model=ReceiptOut,
    status_code=201,
    summary="Upload a receipt image; attach the returned image_ref to an entry row",
)
async def upload_receipt(
    file: UploadFile = File(...),
    actor: ActorContext = Depends(get_approved_actor),
    settings: Settings = Depends(get_app_settings),
    store: BlobStore = Depends(get_blob_store),
):
    if file.content_type not in settings.allowed_receipt_types:
        raise HTTPException(status_code=415, detail="unsupported receipt type")
    data = await file.read(settings.max_receipt_bytes + 1)
    if len(data) > settings.max_receipt_bytes:
        raise HTTPException(status_code=413, detail="receipt too large")
    if not data:
        raise HTTPException(status_code=400, detail="empty file")
    return ReceiptOut(image_ref=store.put(actor.actor_id, file.filename or "", data))
