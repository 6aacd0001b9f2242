"""Pydantic field types shared by the MongoDB-backed models."""

from typing import Annotated, Any

from bson import ObjectId
from pydantic import BeforeValidator


def _hex_id(value: Any) -> Any:
    return str(value) if isinstance(value, ObjectId) else value


# Team and profile ids travel as 24-char hex strings; documents may still
# hold raw ObjectIds in _id, teams[] or members[].userId.
PyObjectId = Annotated[str, BeforeValidator(_hex_id)]
