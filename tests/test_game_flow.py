import random

import pytest

from secret_angel.db import repo
from secret_angel.services import game_flow
from secret_angel.services.assignment import AssignmentInfeasible
from secret_angel.services.conversation import RosterEntry
from secret_angel.services.game_flow import LookupStatus, PersistenceFault


def _roster(session_factory):
    with session_factory() as session:
        return game_flow.snapshot_roster(session)


def _table_snapshot(session_factory):
    with session_factory() as session:
        groups = [(group.id, group.label) for group in repo.list_groups(session)]
        assignments = [
            (row.group_id, row.giver_participant_id, row.receiver_participant_id)
            for row in repo.list_assignments(session)
        ]
        members = repo.count_group_members(session)
    return groups, assignments, members


def test_five_participants_in_two_groups(session_factory, add_participants):
    add_participants("Alice", "Bob", "Carol", "Dave", "Eve")
    roster = _roster(session_factory)

    with session_factory() as session:
        summary = game_flow.create_groups(session, roster, 2, rng=random.Random(11))

    assert summary.groups_created == 2
    assert summary.total_assignments == 5
    assert summary.skipped == []
    assert sorted(len(group.members) for group in summary.groups) == [2, 3]

    groups, assignments, members = _table_snapshot(session_factory)
    assert len(groups) == 2
    assert len(assignments) == 5
    assert members == 5
    assert all(giver != receiver for _, giver, receiver in assignments)
    assert len({giver for _, giver, _ in assignments}) == 5


def test_single_member_groups_are_skipped(session_factory, add_participants):
    add_participants("Alice", "Bob", "Carol")
    roster = _roster(session_factory)

    with session_factory() as session:
        summary = game_flow.create_groups(session, roster, 2, rng=random.Random(4))

    assert summary.groups_created == 1
    assert summary.total_assignments == 2
    assert [group.label for group in summary.skipped] == ["Secret Angel Group 2"]

    groups, assignments, members = _table_snapshot(session_factory)
    assert len(groups) == 1
    assert len(assignments) == 2
    assert members == 2


def test_new_run_replaces_previous_groups(session_factory, add_participants):
    add_participants("Alice", "Bob", "Carol", "Dave")
    roster = _roster(session_factory)

    with session_factory() as session:
        game_flow.create_groups(session, roster, 2, rng=random.Random(1))
    with session_factory() as session:
        game_flow.create_groups(session, roster, 1, rng=random.Random(2))

    groups, assignments, members = _table_snapshot(session_factory)
    assert len(groups) == 1
    assert len(assignments) == 4
    assert members == 4


def test_infeasible_group_rolls_back_everything(session_factory, add_participants):
    add_participants("Alice", "Bob")
    roster = _roster(session_factory)

    with session_factory() as session:
        game_flow.create_groups(session, roster, 1, rng=random.Random(3))
    before = _table_snapshot(session_factory)
    assert len(before[1]) == 2

    with pytest.raises(AssignmentInfeasible) as excinfo:
        with session_factory() as session:
            game_flow.create_groups(session, roster, 1, [("Alice", "Bob")], max_attempts=5)

    assert excinfo.value.group_label == "Secret Angel Group 1"
    assert "Secret Angel Group 1" in str(excinfo.value)
    assert _table_snapshot(session_factory) == before


def test_infeasible_first_run_leaves_no_rows(session_factory, add_participants):
    add_participants("Alice", "Bob")
    roster = _roster(session_factory)

    with pytest.raises(AssignmentInfeasible):
        with session_factory() as session:
            game_flow.create_groups(session, roster, 1, [("Bob", "Alice")])

    assert _table_snapshot(session_factory) == ([], [], 0)


def test_unknown_roster_name_is_a_persistence_fault(session_factory, add_participants, monkeypatch):
    add_participants("Alice", "Bob")
    roster = _roster(session_factory)

    def mismatched_split(participants, num_groups, rng=None):
        return [["Alice", "Zed"]]

    monkeypatch.setattr(game_flow, "split_into_groups", mismatched_split)
    with pytest.raises(PersistenceFault):
        with session_factory() as session:
            game_flow.create_groups(session, roster, 1)

    assert _table_snapshot(session_factory) == ([], [], 0)


def test_register_inserts_then_updates(session_factory):
    with session_factory() as session:
        first = game_flow.register_participant(session, "Alice", "")
    with session_factory() as session:
        second = game_flow.register_participant(session, "Alice", "socks")

    assert first.created is True
    assert second.created is False
    with session_factory() as session:
        participants = game_flow.list_participants(session)
    assert [(p.name, p.wishlist) for p in participants] == [("Alice", "socks")]


def test_lookup_assignment_states(session_factory, add_participants):
    add_participants("Alice", "Bob", wishlist="books")

    with session_factory() as session:
        assert game_flow.lookup_assignment(session, "alice").status == LookupStatus.NOT_ASSIGNED
        assert game_flow.lookup_assignment(session, "Zed").status == LookupStatus.NOT_REGISTERED

    roster = _roster(session_factory)
    with session_factory() as session:
        game_flow.create_groups(session, roster, 1)

    with session_factory() as session:
        lookup = game_flow.lookup_assignment(session, "ALICE")
    assert lookup.status == LookupStatus.FOUND
    assert lookup.receiver_name == "Bob"
    assert lookup.receiver_wishlist == "books"


def test_clear_all_data(session_factory, add_participants):
    add_participants("Alice", "Bob")
    with session_factory() as session:
        game_flow.create_groups(session, _roster(session_factory), 1)

    with session_factory() as session:
        game_flow.clear_all_data(session)

    with session_factory() as session:
        assert repo.count_participants(session) == 0
    assert _table_snapshot(session_factory) == ([], [], 0)


def test_format_summary_lists_pairs_and_skipped_groups():
    summary = game_flow.AssignmentSummary(
        groups=[game_flow.GroupResult("Secret Angel Group 1", ["Alice", "Bob"], [("Alice", "Bob"), ("Bob", "Alice")])],
        skipped=[game_flow.GroupResult("Secret Angel Group 2", ["Carol"])],
    )
    text = game_flow.format_summary(summary)
    assert "created 1 groups and 2 assignments" in text
    assert "  - Alice -> Bob" in text
    assert "<b>Secret Angel Group 2</b> (1 members): Skipped" in text


def test_roster_snapshot_keeps_ids(session_factory, add_participants):
    add_participants("Alice", "Bob")
    roster = _roster(session_factory)
    assert [entry.name for entry in roster] == ["Alice", "Bob"]
    assert all(isinstance(entry, RosterEntry) and entry.id for entry in roster)
