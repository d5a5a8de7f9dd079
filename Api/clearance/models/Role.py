from enum import Enum


class OfficerRole(str, Enum):
    ADMIN = "admin"
    CLEARING_OFFICER = "clearingOfficer"
    DEAN = "dean"
    SAO = "sao"
    REGISTRAR = "registrar"
    CASHIER = "cashier"
    GUIDANCE = "guidance"
    LIBRARY = "library"
    LABORATORY = "laboratory"
    TAILORING = "tailoring"
    STUDENT = "student"


SIGNING_ROLES = frozenset(
    role for role in OfficerRole
    if role not in (OfficerRole.ADMIN, OfficerRole.STUDENT)
)


class Officer:
    """Principal decoded from a bearer token; accounts live in the auth service."""

    def __init__(self, id: str, role: str, school_id: str | None = None):
        self.id = id
        self.role = role
        self.school_id = school_id

    def __repr__(self) -> str:
        return f"Officer(id={self.id!r}, role={self.role!r})"
