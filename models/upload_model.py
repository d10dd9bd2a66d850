"""
Pydantic models for upload orchestration.
"""

from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class UploadStepStatus(str, Enum):
    """Status of a single server-side upload step."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadTarget(str, Enum):
    """Upload lane a batch is routed to."""
    FISH = "fish"
    GEAR = "gear"
    UNIVERSAL = "universal"


class UploadErrorType(str, Enum):
    """Kinds of upload errors surfaced to the client."""
    CLASSIFICATION = "classification"
    UPLOAD = "upload"
    NETWORK = "network"
    TIMEOUT = "timeout"


class LaneState(str, Enum):
    """State of one streaming upload lane."""
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadedImage(BaseModel):
    """An image file received from the client."""
    filename: str
    content: bytes = Field(repr=False)
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class ClassificationResult(BaseModel):
    """Classification answer for one image."""
    type: Literal["fish", "gear"]
    confidence: float = 0.0
    reasoning: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, value):
        # Anything that is not clearly gear goes to the fish gallery
        if isinstance(value, str) and value.strip().lower() == "gear":
            return "gear"
        return "fish"

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, value):
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0


class StreamStatus(BaseModel):
    """Step statuses reported by the streaming upload endpoints."""
    model_config = ConfigDict(populate_by_name=True)

    message: str
    analyzing: UploadStepStatus
    uploading: UploadStepStatus
    saved: UploadStepStatus
    type: Optional[str] = None
    confidence: Optional[float] = None
    classifying: Optional[UploadStepStatus] = None
    analyze_result: Optional[str] = Field(default=None, alias="analyzeResult")
    errors: List[str] = Field(default_factory=list)
    processed_files: Optional[int] = Field(default=None, alias="processedFiles")
    total_files: Optional[int] = Field(default=None, alias="totalFiles")
    upload_status: Optional[UploadStepStatus] = Field(default=None, alias="uploadStatus")
    classification_result: Optional[ClassificationResult] = Field(default=None, alias="classificationResult")

    @property
    def has_failed_step(self) -> bool:
        return UploadStepStatus.FAILED in (self.analyzing, self.uploading, self.saved)


class UploadPhotoStreamData(BaseModel):
    """One parsed chunk of an upload stream."""
    data: StreamStatus


class UploadQueueItem(BaseModel):
    """Pending upload batch kept for bookkeeping and retries."""
    id: str
    files: List[UploadedImage]
    type: UploadTarget
    retry_count: int = 0
    timestamp: int


class UploadError(BaseModel):
    """Error state shown to the client."""
    message: str
    type: UploadErrorType
    timestamp: int
    retryable: bool = True


class LaneSnapshot(BaseModel):
    """Current state of one upload lane."""
    state: LaneState
    data: Optional[UploadPhotoStreamData] = None


class UploadQueueItemResponse(BaseModel):
    """Queue entry as returned by the API."""
    id: str
    filenames: List[str]
    type: UploadTarget
    retry_count: int
    timestamp: int


class UploadStateResponse(BaseModel):
    """Full upload state of a session."""
    photo: LaneSnapshot
    gear: LaneSnapshot
    universal: LaneSnapshot
    identify_gear_message: Optional[str] = None
    show_uploaded_info_msg: bool = False
    uploaded_info_msg: Optional[str] = None
    classifying_image: bool = False
    is_uploading: bool = False
    upload_error: Optional[UploadError] = None
    upload_queue: List[UploadQueueItemResponse] = []
    queue_size: int = 0
    gallery_photo_count: Optional[int] = None
    gear_item_count: Optional[int] = None


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str
    message: str
    details: Optional[dict] = None
