from sqlalchemy import Column, String, Float
from . import Base

class Place(Base):
    # owned by the places service; read-only here
    __tablename__ = 'place'
    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    address = Column(String(255), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
