from __future__ import annotations

import random
from typing import FrozenSet, Iterable, List, MutableSequence, Optional, Sequence, Set, Tuple, TypeVar

from loguru import logger

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 100

_system_random = random.SystemRandom()


class AssignmentError(RuntimeError):
    pass


class InvalidGroupCount(AssignmentError):
    def __init__(self, num_groups: int, participant_count: int) -> None:
        self.num_groups = num_groups
        self.participant_count = participant_count
        if num_groups < 1:
            message = "Number of groups must be at least 1."
        else:
            message = (
                f"Number of groups ({num_groups}) cannot exceed "
                f"the number of participants ({participant_count})."
            )
        super().__init__(message)


class AssignmentInfeasible(AssignmentError):
    def __init__(self, members: Sequence[str], attempts: int, group_label: Optional[str] = None) -> None:
        self.members = list(members)
        self.attempts = attempts
        self.group_label = group_label
        target = group_label or "group"
        super().__init__(
            f"Could not find a valid assignment for {target} [{', '.join(self.members)}] "
            f"respecting restrictions after {attempts} attempts. "
            "Please review restrictions or participants."
        )


def shuffle(items: MutableSequence[T], rng: Optional[random.Random] = None) -> None:
    """Shuffle ``items`` in place.

    Uses OS entropy unless a generator is passed explicitly.
    """
    (rng or _system_random).shuffle(items)


def split_into_groups(
    participants: Sequence[T],
    num_groups: int,
    rng: Optional[random.Random] = None,
) -> List[List[T]]:
    """Randomly partition participants into ``num_groups`` near-equal groups.

    Larger groups come first: sizes are ``len // num_groups`` with the first
    ``len % num_groups`` groups getting one extra member.
    """
    if not participants:
        return []
    if num_groups < 1 or num_groups > len(participants):
        raise InvalidGroupCount(num_groups, len(participants))

    shuffled = list(participants)
    shuffle(shuffled, rng)

    base_size, remainder = divmod(len(shuffled), num_groups)
    groups: List[List[T]] = []
    start = 0
    for index in range(num_groups):
        size = base_size + (1 if index < remainder else 0)
        group = shuffled[start:start + size]
        start += size
        if group:
            groups.append(group)
    return groups


def build_restriction_set(restrictions: Optional[Iterable[Tuple[str, str]]]) -> Set[FrozenSet[str]]:
    return {frozenset(pair) for pair in restrictions or [] if len(set(pair)) == 2}


def is_restricted(giver: str, receiver: str, restrictions: Set[FrozenSet[str]]) -> bool:
    return frozenset((giver, receiver)) in restrictions


def match_group(
    members: Sequence[str],
    restrictions: Optional[Iterable[Tuple[str, str]]] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
) -> List[Tuple[str, str]]:
    """Build a giver -> receiver cycle over ``members`` avoiding restricted pairs.

    Each attempt shuffles the group and links every member to the next one,
    which can never produce a fixed point for two or more members. Attempts
    that hit a restricted pair are discarded. Groups with fewer than two
    members yield no pairs.
    """
    if len(members) < 2:
        logger.bind(members=list(members)).warning(
            "Skipping assignment for group with {count} members", count=len(members)
        )
        return []

    restriction_set = build_restriction_set(restrictions)
    size = len(members)

    for attempt in range(1, max_attempts + 1):
        shuffled = list(members)
        shuffle(shuffled, rng)

        pairs: List[Tuple[str, str]] = []
        for index, giver in enumerate(shuffled):
            receiver = shuffled[(index + 1) % size]
            if giver == receiver or is_restricted(giver, receiver, restriction_set):
                break
            pairs.append((giver, receiver))
        else:
            logger.debug("Valid assignment found after {attempt} attempt(s)", attempt=attempt)
            return pairs

    raise AssignmentInfeasible(members, max_attempts)
