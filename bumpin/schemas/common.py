from typing import Generic, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar('T')

class ErrorOut(BaseModel):
    code: str
    message: str

class ResultOut(BaseModel, Generic[T]):
    data: Optional[T] = None
    error: Optional[ErrorOut] = None
