from secret_angel.db.models import AngelGroup, Assignment, Base, GroupMember, Participant
from secret_angel.db.session import SessionLocal, get_session, init_engine

__all__ = [
    "AngelGroup",
    "Assignment",
    "Base",
    "GroupMember",
    "Participant",
    "SessionLocal",
    "get_session",
    "init_engine",
]
