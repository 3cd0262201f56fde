from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum


def to_jsonable(obj):
    """Convert domain objects to JSON-serializable values.

    Handles:
    - Basic types (str, int, float, bool, None)
    - Enums (by value)
    - Datetimes and dates (ISO 8601)
    - Collections (list, tuple, set, frozenset, dict); sets come out sorted
    - Dataclasses (field by field, keeping properties out)
    - Bytes/Bytearray (decoded as UTF-8 when possible, hex otherwise)
    - Pydantic models

    Args:
        obj: Any Python object

    Returns:
        A JSON-serializable version of the object
    """
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj
    elif isinstance(obj, Enum):
        return to_jsonable(obj.value)
    elif isinstance(obj, str):
        return obj
    elif isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, (bytes, bytearray)):
        try:
            return bytes(obj).decode("utf-8")
        except UnicodeDecodeError:
            return bytes(obj).hex()
    elif isinstance(obj, (list, tuple)):
        return [to_jsonable(item) for item in obj]
    elif isinstance(obj, (set, frozenset)):
        return sorted((to_jsonable(item) for item in obj), key=str)
    elif isinstance(obj, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in obj.items()}
    elif is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    elif hasattr(obj, 'model_dump'):  # Pydantic v2
        return to_jsonable(obj.model_dump())
    else:
        return str(obj)
