"""Closed set of roles a user can hold."""
import enum


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    INSTRUCTOR = "INSTRUCTOR"
    EMPLOYEE = "EMPLOYEE"

    @classmethod
    def parse(cls, value) -> "Role":
        """Coerce a claim or column value into a Role, raising ValueError if unknown."""
        if isinstance(value, cls):
            return value
        return cls(str(value).upper())
