"""
Custom column types.
"""

from uuid import UUID

from sqlalchemy import JSON
from sqlalchemy.types import TypeDecorator


class UUIDList(TypeDecorator):
    """
    A list of UUIDs stored as a JSON array of strings.

    In memory the value is always ``list[UUID]``; strings only exist
    in the database column.
    """

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return [str(UUID(str(item))) for item in value]

    def process_result_value(self, value, dialect):
        if not value:
            return []
        return [UUID(item) for item in value]
