from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel
from .profiles import ProfileSummary

class RelationshipIn(BaseModel):
    recipient_id: str

class HopeToBumpIn(BaseModel):
    hope_to_bump: bool

class RelationshipOut(BaseModel):
    id: str
    requester_id: str
    recipient_id: str
    status: str
    hope_to_bump: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RelationshipView(RelationshipOut):
    counterpart: Optional[ProfileSummary] = None

class RelationshipListing(BaseModel):
    accepted: List[RelationshipView] = []
    pending_received: List[RelationshipView] = []
    pending_sent: List[RelationshipView] = []
