from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from .profiles import PlaceOut, ProfileSummary

class CheckInIn(BaseModel):
    place_id: str
    activity: Optional[str] = None
    privacy: str = 'public'
    ttl_minutes: Optional[int] = Field(default=None, gt=0)
    expires_at: Optional[datetime] = None

class CheckInUpdateIn(BaseModel):
    """Partial update; only the keys the client sends are applied."""
    activity: Optional[str] = None
    privacy: Optional[str] = None
    expires_at: Optional[datetime] = None

    class Config:
        extra = 'forbid'

class CheckInOut(BaseModel):
    id: str
    subject_id: str
    place_id: str
    activity: Optional[str] = None
    privacy: str
    created_at: datetime
    expires_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CheckInView(CheckInOut):
    place: PlaceOut
    profile: ProfileSummary

class PlaceGroup(BaseModel):
    place: PlaceOut
    check_ins: List[CheckInView] = []
