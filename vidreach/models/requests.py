"""
Pydantic request models for input validation
"""
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, validator

from vidreach.models.composition import CompositionRequest


class CompositionPayload(BaseModel):
    """Remote composition request body (camelCase on the wire)"""
    base_video_url: str = Field(
        ...,
        validation_alias=AliasChoices("baseVideoUrl", "baseVideoURL", "base_video_url"),
        description="Talking head video URL",
    )
    background_url: str = Field(
        ...,
        validation_alias=AliasChoices("backgroundUrl", "backgroundURL", "backgroundImageUrl", "background_url"),
        description="Website screenshot or scrolling capture URL",
    )
    position: str = Field("bottom-right", description="Overlay anchor corner")
    size: int = Field(300, gt=0, le=1080, description="Overlay diameter in pixels")
    duration: float = Field(
        30.0,
        gt=0,
        le=600,
        validation_alias=AliasChoices("duration", "durationSeconds", "duration_seconds"),
        description="Output duration in seconds",
    )
    owner_scope_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("ownerScopeId", "ownerScopeID", "projectId", "owner_scope_id"),
        description="Storage namespace (project id)",
    )
    background_is_video: Optional[bool] = Field(
        None,
        validation_alias=AliasChoices("backgroundIsVideo", "background_is_video"),
    )

    @validator('base_video_url', 'background_url')
    def validate_http_url(cls, v):
        """Inputs are always fetched over HTTP(S)"""
        if not v.lower().startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v

    def to_request(self) -> CompositionRequest:
        return CompositionRequest(
            base_video_url=self.base_video_url,
            background_url=self.background_url,
            position=self.position,
            size=self.size,
            duration_seconds=self.duration,
            owner_scope_id=self.owner_scope_id,
            background_is_video=self.background_is_video,
        )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "baseVideoUrl": "https://cdn.example.com/talking.mp4",
                "backgroundUrl": "https://cdn.example.com/shot.png",
                "position": "bottom-right",
                "size": 300,
                "duration": 30,
                "projectId": "proj_123"
            }
        }
