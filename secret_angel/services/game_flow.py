from __future__ import annotations

import enum
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from secret_angel.db import Participant, repo
from secret_angel.services.assignment import (
    DEFAULT_MAX_ATTEMPTS,
    AssignmentInfeasible,
    match_group,
    split_into_groups,
)
from secret_angel.services.conversation import RosterEntry

GROUP_LABEL = "Secret Angel Group {index}"


class PersistenceFault(RuntimeError):
    pass


@dataclass(frozen=True)
class RegistrationResult:
    name: str
    wishlist: str
    created: bool


class LookupStatus(str, enum.Enum):
    FOUND = "found"
    NOT_ASSIGNED = "not_assigned"
    NOT_REGISTERED = "not_registered"


@dataclass(frozen=True)
class AssignmentLookup:
    status: LookupStatus
    receiver_name: Optional[str] = None
    receiver_wishlist: Optional[str] = None


@dataclass(frozen=True)
class GroupResult:
    label: str
    members: List[str]
    pairs: List[Tuple[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class AssignmentSummary:
    groups: List[GroupResult]
    skipped: List[GroupResult]

    @property
    def groups_created(self) -> int:
        return len(self.groups)

    @property
    def total_assignments(self) -> int:
        return sum(len(group.pairs) for group in self.groups)


def register_participant(session, name: str, wishlist: str) -> RegistrationResult:
    participant, created = repo.upsert_participant(session, name, wishlist)
    logger.bind(name=name, created=created).info("Participant registered")
    return RegistrationResult(name=participant.name, wishlist=participant.wishlist, created=created)


def lookup_assignment(session, giver_name: str) -> AssignmentLookup:
    assignment = repo.find_assignment_for_giver(session, giver_name)
    if assignment:
        return AssignmentLookup(
            LookupStatus.FOUND,
            receiver_name=assignment.receiver.name,
            receiver_wishlist=assignment.receiver.wishlist or "",
        )
    if repo.find_participant_by_name(session, giver_name):
        return AssignmentLookup(LookupStatus.NOT_ASSIGNED)
    return AssignmentLookup(LookupStatus.NOT_REGISTERED)


def list_participants(session) -> List[Participant]:
    return repo.list_participants(session)


def snapshot_roster(session) -> List[RosterEntry]:
    return [RosterEntry(id=participant_id, name=name) for participant_id, name in repo.list_roster(session)]


def clear_all_data(session) -> None:
    repo.clear_all(session)
    logger.warning("All participant, group and assignment data cleared")


def create_groups(
    session,
    roster: Sequence[RosterEntry],
    num_groups: int,
    restrictions: Sequence[Tuple[str, str]] = (),
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
) -> AssignmentSummary:
    """Replace all groups and assignments with a freshly drawn set.

    Runs inside the caller's transaction: any exception leaves the previous
    groups and assignments in place once the session rolls back.
    """
    ids_by_name: Dict[str, int] = {entry.name: entry.id for entry in roster}

    repo.clear_groups(session)

    groups: List[GroupResult] = []
    skipped: List[GroupResult] = []
    for index, members in enumerate(split_into_groups([entry.name for entry in roster], num_groups, rng), start=1):
        label = GROUP_LABEL.format(index=index)

        if len(members) < 2:
            logger.bind(group=label, members=members).warning("Skipping group with fewer than 2 members")
            skipped.append(GroupResult(label=label, members=members))
            continue

        try:
            pairs = match_group(members, restrictions, max_attempts=max_attempts, rng=rng)
        except AssignmentInfeasible as exc:
            raise AssignmentInfeasible(exc.members, exc.attempts, group_label=label) from exc

        group = repo.create_group(session, label)
        repo.add_group_members(session, group.id, [_resolve(ids_by_name, name) for name in members])
        repo.create_assignments(
            session,
            group.id,
            [(_resolve(ids_by_name, giver), _resolve(ids_by_name, receiver)) for giver, receiver in pairs],
        )
        groups.append(GroupResult(label=label, members=members, pairs=pairs))

    summary = AssignmentSummary(groups=groups, skipped=skipped)
    logger.bind(
        groups=summary.groups_created,
        assignments=summary.total_assignments,
        skipped=len(skipped),
        restrictions=len(restrictions),
    ).info("Groups and assignments generated")
    return summary


def _resolve(ids_by_name: Dict[str, int], name: str) -> int:
    try:
        return ids_by_name[name]
    except KeyError:
        raise PersistenceFault(f"Could not map participant name {name!r} to an id.") from None


def format_summary(summary: AssignmentSummary) -> str:
    lines = [
        f"✅ Successfully created {summary.groups_created} groups "
        f"and {summary.total_assignments} assignments!"
    ]
    for group in summary.groups:
        lines.append("")
        lines.append(f"<b>{group.label}</b> ({len(group.members)} members):")
        lines.extend(f"  - {giver} -> {receiver}" for giver, receiver in group.pairs)
    for group in summary.skipped:
        lines.append("")
        lines.append(
            f"<b>{group.label}</b> ({len(group.members)} members): "
            "Skipped (requires at least 2 members for assignments)"
        )
    return "\n".join(lines)


def format_participants(participants: Sequence[Participant]) -> str:
    lines = ["<b>Registered Participants:</b>", ""]
    for index, participant in enumerate(participants, start=1):
        lines.append(f"{index}. <b>{participant.name}</b>")
        lines.append(f"   Wishlist: {participant.wishlist or '-'}")
    return "\n".join(lines)
