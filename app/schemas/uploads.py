import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UploadResponse(BaseModel):
    file_name: str
    file_url: str
    file_size: int
    file_type: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadOperation(str, enum.Enum):
    CANCEL = "cancel"
    CLEANUP = "cleanup"


class UploadOperationRequest(BaseModel):
    operation: UploadOperation
    item_id: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadOperationResponse(BaseModel):
    success: bool = True
    message: str
    removed: int = 0
