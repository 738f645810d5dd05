"""
ObjectId parsing for ids that arrive as strings.
"""

from typing import Any

from bson import ObjectId

from common.utils.exceptions import ValidationException


def to_object_id(value: Any, field: str = "id") -> ObjectId:
    """
    Parse an id coming from a request or another collection.

    Raises:
        ValidationException: Not a valid ObjectId
    """
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(str(value)):
        raise ValidationException(message=f"Invalid {field}", code="INVALID_ID")
    return ObjectId(str(value))
