import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import pytest

from dineflow.app.domain.order_status import (
    TERMINAL,
    TRANSITIONS,
    OrderStatus,
    can_transition,
    check_transition,
    parse_status,
)
from dineflow.app.errors import InvalidTransition, ValidationFailure


def test_transition_table():
    assert TRANSITIONS[OrderStatus.PENDING] == [OrderStatus.PREPARING, OrderStatus.CANCELLED]
    assert TRANSITIONS[OrderStatus.PREPARING] == [OrderStatus.SERVED, OrderStatus.CANCELLED]
    assert TRANSITIONS[OrderStatus.SERVED] == [OrderStatus.DONE]
    assert TRANSITIONS[OrderStatus.DONE] == []
    assert TRANSITIONS[OrderStatus.CANCELLED] == []


@pytest.mark.parametrize(
    "src,dst,allowed",
    [
        ("pending", "preparing", True),
        ("pending", "cancelled", True),
        ("pending", "served", False),
        ("pending", "done", False),
        ("preparing", "served", True),
        ("preparing", "cancelled", True),
        ("preparing", "pending", False),
        ("served", "done", True),
        ("served", "cancelled", False),
        ("done", "pending", False),
        ("cancelled", "preparing", False),
    ],
)
def test_can_transition(src, dst, allowed):
    assert can_transition(OrderStatus(src), OrderStatus(dst)) is allowed


def test_terminal_states_have_no_exits():
    assert TERMINAL == {OrderStatus.DONE, OrderStatus.CANCELLED}
    for status in TERMINAL:
        assert not any(can_transition(status, dst) for dst in OrderStatus)


def test_check_transition_rejects_skip():
    with pytest.raises(InvalidTransition) as exc:
        check_transition("pending", "done")
    assert exc.value.details == {"from": "pending", "to": "done"}
    assert exc.value.status_code == 409


def test_unknown_status_is_validation_failure():
    with pytest.raises(ValidationFailure):
        parse_status("shipped")
    with pytest.raises(ValidationFailure):
        check_transition("pending", "shipped")


def test_check_transition_returns_enum():
    assert check_transition(OrderStatus.SERVED, "done") is OrderStatus.DONE
