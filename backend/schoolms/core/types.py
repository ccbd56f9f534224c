"""Column types and defaults shared by the models"""
from datetime import datetime
import uuid

from sqlalchemy import TypeDecorator, String


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.utcnow()


class GUID(TypeDecorator):
    """
    UUID stored as VARCHAR(36) on every backend.

    Bound values are normalised to the canonical lowercase form so that
    identifiers taken from token claims or URLs compare equal to stored ones.
    """
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        return str(value) if value is not None else value
