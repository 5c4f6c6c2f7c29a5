import pytest

from ballotbox.models import WorkflowStatus
from ballotbox.services.phase_service import (
    get_next_status,
    is_valid_transition,
    operation_allowed,
)
from ballotbox.services.tally_service import compute_winning_ids, total_votes


def test_single_winner():
    assert compute_winning_ids([(0, 0), (1, 2)]) == [1]


def test_draw_keeps_every_maximum_in_ascending_order():
    assert compute_winning_ids([(2, 3), (0, 3), (1, 1)]) == [0, 2]


def test_all_zero_is_a_full_draw():
    assert compute_winning_ids([(0, 0), (1, 0), (2, 0)]) == [0, 1, 2]


def test_no_proposals_no_winners():
    assert compute_winning_ids([]) == []


def test_total_votes():
    assert total_votes([(0, 2), (1, 3)]) == 5
    assert total_votes([]) == 0


def test_next_status_is_strictly_forward():
    statuses = list(WorkflowStatus)
    for current, following in zip(statuses, statuses[1:]):
        assert get_next_status(current) == following
    assert get_next_status(WorkflowStatus.VOTES_TALLIED) is None


@pytest.mark.parametrize("current", list(WorkflowStatus))
@pytest.mark.parametrize("target", list(WorkflowStatus))
def test_no_skipping_or_going_back(current, target):
    assert is_valid_transition(current, target) == (target == current + 1)


def test_each_operation_has_exactly_one_phase():
    for operation in ("add_voter", "add_proposal", "set_vote"):
        allowed = [s for s in WorkflowStatus if operation_allowed(operation, s)]
        assert len(allowed) == 1
