from fastapi import APIRouter, Depends, File, UploadFile

from app import models, schemas, services
from app.dependencies import get_current_user, get_storage
from app.utils.storage import GcsStorage

router = APIRouter()


@router.post("/upload", response_model=schemas.UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    current_user: models.Profile = Depends(get_current_user),
    storage: GcsStorage = Depends(get_storage),
):
    """
    Upload a proposal document or image.
    The file is stored under the caller's prefix and its public URL returned.
    """
    return await services.upload_service.upload_file(file, current_user.id, storage)


@router.put("/upload", response_model=schemas.UploadOperationResponse)
async def upload_operation(
    operation_in: schemas.UploadOperationRequest,
    current_user: models.Profile = Depends(get_current_user),
    storage: GcsStorage = Depends(get_storage),
):
    return await services.upload_service.run_operation(operation_in, current_user.id, storage)
