from typing import Callable, Optional
from fastapi import Response
from ..errors import Result


def respond(result: Result, response: Response, transform: Optional[Callable] = None) -> dict:
    """Copy the result's status onto the response and return the ``{data, error}`` body."""
    response.status_code = result.status_code
    if result.ok and transform is not None:
        result = Result(data=transform(result.data))
    return result.to_envelope()
