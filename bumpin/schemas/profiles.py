from pydantic import BaseModel
from typing import Optional

class ProfileSummary(BaseModel):
    id: str
    display_name: Optional[str] = None
    handle: str

    class Config:
        from_attributes = True

class PlaceOut(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    class Config:
        from_attributes = True
