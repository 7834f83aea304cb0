"""
Request and response schemas for the media upload/delete endpoint.
"""

from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional


class MediaRequest(BaseModel):
    """Upload takes a base64 data URL in ``file``; delete takes a ``public_id``."""

    action: Literal["upload", "delete"]
    file: Optional[str] = Field(None, description="data:<mime>;base64,<payload>")
    public_id: Optional[str] = Field(None, description="Identifier returned by a previous upload")

    @model_validator(mode="after")
    def validate_payload(self):
        if self.action == "upload" and not self.file:
            raise ValueError("file is required for upload")
        if self.action == "delete" and not self.public_id:
            raise ValueError("public_id is required for delete")
        return self


class MediaUploadResponse(BaseModel):
    secure_url: str
    public_id: str
    resource_type: str = Field(..., description="image or video")
    format: str
    bytes: int
    width: Optional[int] = None
    height: Optional[int] = None


class MediaDeleteResponse(BaseModel):
    result: str = Field(..., description="ok or not found")


class MediaDiscardRequest(BaseModel):
    """Uploaded-but-unsaved media to drop when a property form is closed."""

    urls: List[str] = Field(default_factory=list, description="secure_url values returned by upload")


class MediaDiscardResponse(BaseModel):
    discarded: int
    failed: List[str] = Field(default_factory=list, description="URLs that could not be deleted")
