from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import joinedload

from secret_angel.db.models import AngelGroup, Assignment, GroupMember, Participant


def get_participant_by_name(session, name: str) -> Optional[Participant]:
    return session.scalar(select(Participant).where(Participant.name == name))


def find_participant_by_name(session, name: str) -> Optional[Participant]:
    return session.scalar(
        select(Participant).where(func.lower(Participant.name) == name.lower()).limit(1)
    )


def upsert_participant(session, name: str, wishlist: str) -> Tuple[Participant, bool]:
    participant = get_participant_by_name(session, name)
    if participant:
        participant.wishlist = wishlist
        return participant, False

    participant = Participant(name=name, wishlist=wishlist)
    session.add(participant)
    session.flush()
    return participant, True


def list_participants(session) -> List[Participant]:
    return list(session.scalars(select(Participant).order_by(Participant.name)).all())


def list_roster(session) -> List[Tuple[int, str]]:
    rows = session.execute(select(Participant.id, Participant.name).order_by(Participant.id)).all()
    return [(row.id, row.name) for row in rows]


def count_participants(session) -> int:
    return session.scalar(select(func.count()).select_from(Participant))


def clear_groups(session) -> None:
    session.execute(delete(Assignment))
    session.execute(delete(GroupMember))
    session.execute(delete(AngelGroup))


def clear_all(session) -> None:
    clear_groups(session)
    session.execute(delete(Participant))


def create_group(session, label: str) -> AngelGroup:
    group = AngelGroup(label=label)
    session.add(group)
    session.flush()
    return group


def add_group_members(session, group_id: int, participant_ids: Iterable[int]) -> None:
    session.add_all(
        [GroupMember(group_id=group_id, participant_id=participant_id) for participant_id in participant_ids]
    )


def create_assignments(session, group_id: int, pairs: Iterable[Tuple[int, int]]) -> None:
    rows = [
        Assignment(group_id=group_id, giver_participant_id=giver_id, receiver_participant_id=receiver_id)
        for giver_id, receiver_id in pairs
    ]
    session.add_all(rows)
    session.flush()


def find_assignment_for_giver(session, giver_name: str) -> Optional[Assignment]:
    giver = Participant.__table__.alias("giver")
    return session.scalar(
        select(Assignment)
        .join(giver, Assignment.giver_participant_id == giver.c.id)
        .where(func.lower(giver.c.name) == giver_name.lower())
        .options(joinedload(Assignment.receiver))
        .limit(1)
    )


def list_groups(session) -> List[AngelGroup]:
    return list(session.scalars(select(AngelGroup).order_by(AngelGroup.id)).all())


def list_assignments(session) -> List[Assignment]:
    return list(session.scalars(select(Assignment).order_by(Assignment.id)).all())


def count_group_members(session) -> int:
    return session.scalar(select(func.count()).select_from(GroupMember))
