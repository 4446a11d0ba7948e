# SQLModel database models

from bluecarbon.models.project import Project, ProjectStatus
from bluecarbon.models.profile import Profile, UserRole
from bluecarbon.models.mint import MintAttempt, MintOutcome, CreditSource
from bluecarbon.models.token import CarbonToken
from bluecarbon.models.audit import AuditLog

__all__ = [
    "Project",
    "ProjectStatus",
    "Profile",
    "UserRole",
    "MintAttempt",
    "MintOutcome",
    "CreditSource",
    "CarbonToken",
    "AuditLog",
]
