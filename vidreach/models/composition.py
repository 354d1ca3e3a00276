"""
Pipeline-scoped domain models for video composition
"""
import uuid
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field


class AssetKind(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


class CompositionRequest(BaseModel):
    """One personalization job: base video + prospect background + layout."""
    base_video_url: str = Field(..., min_length=1, description="Talking head video URL")
    background_url: str = Field(..., min_length=1, description="Website screenshot or scrolling capture URL")
    position: str = Field("bottom-right", description="Overlay anchor corner")
    size: int = Field(300, gt=0, description="Overlay diameter in pixels")
    duration_seconds: float = Field(30.0, gt=0, description="Output duration in seconds")
    owner_scope_id: str = Field("default", min_length=1, description="Storage key namespace (project/tenant)")
    background_is_video: Optional[bool] = Field(None, description="Explicit background kind; None means detect")
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])

    class Config:
        frozen = True


class LocalAsset(BaseModel):
    """A downloaded input owned by a single orchestrator invocation."""
    source_url: str
    local_path: Path
    kind: AssetKind

    @property
    def is_video(self) -> bool:
        return self.kind == AssetKind.VIDEO


class CompositionResult(BaseModel):
    """Terminal value returned to the per-prospect processing loop."""
    success: bool
    output_url: Optional[str] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None
    storage_key: Optional[str] = None
    fallback: bool = False

    def to_response(self) -> Dict[str, Any]:
        """camelCase dict used on HTTP boundaries"""
        data: Dict[str, Any] = {"success": self.success}
        if self.output_url is not None:
            data["outputURL"] = self.output_url
        if self.duration_seconds is not None:
            data["durationSeconds"] = self.duration_seconds
        if self.storage_key is not None:
            data["storageKey"] = self.storage_key
        if self.error is not None:
            data["error"] = self.error
        if self.fallback:
            data["fallback"] = True
        return data
