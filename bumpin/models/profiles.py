from sqlalchemy import Column, String
from . import Base

class Profile(Base):
    # owned by the identity service; read-only here
    __tablename__ = 'profile'
    id = Column(String(64), primary_key=True)
    display_name = Column(String(150), nullable=True)
    handle = Column(String(150), unique=True, index=True, nullable=False)
