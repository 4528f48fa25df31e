# kibbledrop/api/routers/uploads.py
from fastapi import APIRouter, Depends, File, UploadFile

from kibbledrop.api.deps import require_admin
from kibbledrop.domain.schemas import UploadOut
from kibbledrop.services.upload_service import UploadService
from kibbledrop.utils.settings import MAX_UPLOAD_BYTES

router = APIRouter(prefix="/api/upload", tags=["upload"], dependencies=[Depends(require_admin)])


def get_upload_service() -> UploadService:
    return UploadService()


@router.post("", response_model=UploadOut, status_code=201)
def upload_image(file: UploadFile = File(...), svc: UploadService = Depends(get_upload_service)):
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    return svc.save_product_image(file.content_type, data)
