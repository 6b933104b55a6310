"""
JSON:API envelope helpers for Prime API responses.

Prime API uses the JSON:API specification with the
``application/vnd.api.v2+json`` media type. Only the structural checks the
request pipeline needs live here: decoding a body and recognising an error
document, whether it arrives with an error status or inside a 2xx response.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError


class JsonApiErrorSource(BaseModel):
    """Pointer to the part of the request that caused an error."""
    pointer: Optional[str] = None
    parameter: Optional[str] = None


class JsonApiError(BaseModel):
    """A single JSON:API error object."""
    id: Optional[str] = None
    status: Optional[str] = None
    code: Optional[str] = None
    title: Optional[str] = None
    detail: Optional[str] = None
    source: Optional[JsonApiErrorSource] = Field(default=None)

    model_config = {"extra": "allow", "coerce_numbers_to_str": True}

    def message(self) -> str:
        return self.detail or self.title or "Unknown error"


def is_error_document(body: Any) -> bool:
    """Check if a decoded body is a JSON:API error document."""
    return isinstance(body, dict) and isinstance(body.get("errors"), list)


def parse_errors(body: Dict[str, Any]) -> List[JsonApiError]:
    """Parse the error objects of an error document, skipping entries that do not fit the schema."""
    errors = []
    for error in body["errors"]:
        if not isinstance(error, dict):
            continue
        try:
            errors.append(JsonApiError.model_validate(error))
        except PydanticValidationError:
            continue
    return errors


def _error_message(error: Dict[str, Any]) -> str:
    try:
        return JsonApiError.model_validate(error).message()
    except PydanticValidationError:
        # Non-string detail or title, or a malformed source
        return str(error.get("detail") or error.get("title") or "Unknown error")


def extract_error_messages(body: Dict[str, Any]) -> List[str]:
    """Extract one human readable message per error object."""
    messages = [_error_message(error) for error in body["errors"] if isinstance(error, dict)]
    return messages or ["Unknown error"]


def decode_body(response: httpx.Response) -> Any:
    """
    Decode a successful response body.

    A 204 or an empty body yields an empty result rather than a decode error.

    Raises:
        ValueError: If the body is not valid JSON
    """
    if response.status_code == 204 or not response.content.strip():
        return {"data": []}
    return json.loads(response.content)


def try_decode_body(response: httpx.Response) -> Optional[Any]:
    """Decode an error response body, returning None if it is not JSON."""
    try:
        return json.loads(response.content) if response.content.strip() else None
    except ValueError:
        return None
