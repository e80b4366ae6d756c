"""Graph-backed repositories.

Every public coroutine opens its own session and runs one transaction.
"""

from eventreg.repositories.events import EventRepository
from eventreg.repositories.forms import FormRepository
from eventreg.repositories.participants import ParticipantRepository
from eventreg.repositories.staff import StaffAssignment
from eventreg.repositories.users import UserRepository

__all__ = [
    "EventRepository",
    "FormRepository",
    "ParticipantRepository",
    "StaffAssignment",
    "UserRepository",
]
