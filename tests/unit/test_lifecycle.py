"""Ticket state machine and apply_change."""

from datetime import timedelta

import pytest

from src.config import Priority, Role, ServiceLevel, TicketCategory, TicketStatus
from src.core import InvalidTransitionException, ValidationException
from src.shared.domain import Actor
from src.tickets.domain import (
    TRANSITIONS,
    Assignment,
    FieldChange,
    StatusChange,
    apply_change,
    is_transition_allowed,
    resolve_transition,
)
from tests.conftest import T0
from tests.factories import make_ticket

AGENT = Actor(id="u-agent", role=Role.SUPPORT_STAFF)
REQUESTER = Actor(id="u-requester", role=Role.END_USER)
NOW = T0 + timedelta(hours=2)

STORED = [s for s in TicketStatus if s != TicketStatus.REOPENED]


def _pairs():
    for current in STORED:
        for requested in TicketStatus:
            yield current, requested


def _expected(current, requested):
    if requested == TicketStatus.REOPENED:
        return current in (TicketStatus.RESOLVED, TicketStatus.CLOSED)
    return requested in TRANSITIONS[current]


class TestTransitionTable:
    @pytest.mark.parametrize("current,requested", list(_pairs()))
    def test_every_pair_matches_table(self, current, requested):
        assert is_transition_allowed(current, requested) == _expected(current, requested)

    @pytest.mark.parametrize("current,requested", [
        pair for pair in _pairs() if not _expected(*pair)
    ])
    def test_rejected_transition_leaves_ticket_unchanged(self, current, requested):
        ticket = make_ticket(status=current)
        snapshot = (ticket.status, ticket.closed_at, ticket.updated_at, ticket.version)

        with pytest.raises(InvalidTransitionException):
            apply_change(ticket, StatusChange(requested, resolution="x"), AGENT, NOW)

        assert (ticket.status, ticket.closed_at, ticket.updated_at, ticket.version) == snapshot

    @pytest.mark.parametrize("current", [TicketStatus.RESOLVED, TicketStatus.CLOSED])
    def test_reopened_lands_in_open(self, current):
        assert resolve_transition(current, TicketStatus.REOPENED) == TicketStatus.OPEN

    def test_same_status_is_not_a_transition(self):
        assert not is_transition_allowed(TicketStatus.OPEN, TicketStatus.OPEN)


class TestStatusChange:
    def test_resolve_without_resolution_fails(self):
        ticket = make_ticket(status=TicketStatus.IN_PROGRESS)

        with pytest.raises(ValidationException):
            apply_change(ticket, StatusChange(TicketStatus.RESOLVED), AGENT, NOW)
        with pytest.raises(ValidationException):
            apply_change(ticket, StatusChange(TicketStatus.RESOLVED, resolution="   "), AGENT, NOW)

    def test_resolve_with_resolution_sets_closed_at(self):
        ticket = make_ticket(status=TicketStatus.IN_PROGRESS)

        updated, entries = apply_change(
            ticket, StatusChange(TicketStatus.RESOLVED, resolution="Replaced disk"), AGENT, NOW
        )

        assert updated.status == TicketStatus.RESOLVED
        assert updated.closed_at == NOW
        assert updated.resolution == "Replaced disk"
        assert len(entries) == 1
        assert (entries[0].field, entries[0].old_value, entries[0].new_value) == (
            "status", "IN_PROGRESS", "RESOLVED"
        )

    def test_close_sets_closed_at_without_resolution(self):
        updated, _ = apply_change(
            make_ticket(status=TicketStatus.OPEN), StatusChange(TicketStatus.CLOSED), AGENT, NOW
        )
        assert updated.closed_at == NOW

    @pytest.mark.parametrize("current", [TicketStatus.RESOLVED, TicketStatus.CLOSED])
    def test_reopen_clears_closed_at(self, current):
        ticket = make_ticket(status=current)

        updated, entries = apply_change(ticket, StatusChange(TicketStatus.REOPENED), REQUESTER, NOW)

        assert updated.status == TicketStatus.OPEN
        assert updated.closed_at is None
        assert entries[0].new_value == "OPEN"

    def test_closed_at_tracks_terminal_status_across_a_full_cycle(self):
        ticket = make_ticket()
        steps = [
            StatusChange(TicketStatus.OPEN),
            StatusChange(TicketStatus.IN_PROGRESS),
            StatusChange(TicketStatus.RESOLVED, resolution="fixed"),
            StatusChange(TicketStatus.REOPENED),
            StatusChange(TicketStatus.CLOSED),
            StatusChange(TicketStatus.OPEN),
        ]
        for step in steps:
            ticket, _ = apply_change(ticket, step, AGENT, NOW)
            assert (ticket.closed_at is not None) == ticket.is_terminal

    def test_first_response_recorded_when_support_picks_up(self):
        updated, _ = apply_change(make_ticket(), StatusChange(TicketStatus.IN_PROGRESS), AGENT, NOW)
        assert updated.first_response_at == NOW

    def test_due_date_untouched_by_status_change(self):
        ticket = make_ticket(status=TicketStatus.OPEN)
        updated, _ = apply_change(ticket, StatusChange(TicketStatus.CLOSED), AGENT, NOW)
        assert updated.due_date == ticket.due_date


class TestFieldChange:
    @pytest.mark.parametrize("field,value,old,new", [
        ("priority", Priority.HIGH, "MEDIUM", "HIGH"),
        ("category", TicketCategory.NETWORK, "HARDWARE", "NETWORK"),
        ("service_level", ServiceLevel.PREMIUM, "STANDARD", "PREMIUM"),
    ])
    def test_tracked_change_produces_one_history_entry(self, field, value, old, new):
        updated, entries = apply_change(make_ticket(), FieldChange(field, value), AGENT, NOW)

        assert getattr(updated, field) == value
        assert len(entries) == 1
        entry = entries[0]
        assert (entry.field, entry.old_value, entry.new_value) == (field, old, new)
        assert entry.changed_by == AGENT.id
        assert entry.changed_at == NOW

    def test_unchanged_value_is_a_no_op(self):
        ticket = make_ticket()
        updated, entries = apply_change(ticket, FieldChange("priority", Priority.MEDIUM), AGENT, NOW)
        assert updated is ticket
        assert entries == []

    def test_service_level_change_recomputes_due_date(self):
        ticket = make_ticket(status=TicketStatus.OPEN)

        updated, _ = apply_change(
            ticket, FieldChange("service_level", ServiceLevel.CRITICAL_SUPPORT), AGENT, NOW
        )

        assert updated.due_date == ticket.created_at + timedelta(hours=4)

    def test_service_level_change_on_terminal_ticket_keeps_due_date(self):
        ticket = make_ticket(status=TicketStatus.CLOSED)

        updated, _ = apply_change(
            ticket, FieldChange("service_level", ServiceLevel.CRITICAL_SUPPORT), AGENT, NOW
        )

        assert updated.service_level == ServiceLevel.CRITICAL_SUPPORT
        assert updated.due_date == ticket.due_date

    def test_title_change_is_not_audited(self):
        updated, entries = apply_change(make_ticket(), FieldChange("title", "New title"), AGENT, NOW)
        assert updated.title == "New title"
        assert entries == []

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationException):
            apply_change(make_ticket(), FieldChange("status", "CLOSED"), AGENT, NOW)

    def test_invalid_enum_value_rejected(self):
        with pytest.raises(ValidationException):
            apply_change(make_ticket(), FieldChange("priority", "URGENT"), AGENT, NOW)


class TestAssignment:
    def test_assigning_new_ticket_opens_it(self):
        updated, entries = apply_change(make_ticket(), Assignment("u-agent"), AGENT, NOW)

        assert updated.assigned_to_id == "u-agent"
        assert updated.status == TicketStatus.OPEN
        assert [(e.field, e.old_value, e.new_value) for e in entries] == [
            ("assigned_to_id", None, "u-agent"),
            ("status", "NEW", "OPEN"),
        ]

    def test_reassigning_open_ticket_keeps_status(self):
        ticket = make_ticket(status=TicketStatus.IN_PROGRESS, assigned_to_id="u-agent")

        updated, entries = apply_change(ticket, Assignment("u-agent-2"), AGENT, NOW)

        assert updated.status == TicketStatus.IN_PROGRESS
        assert len(entries) == 1

    def test_same_assignee_is_a_no_op(self):
        ticket = make_ticket(assigned_to_id="u-agent")
        updated, entries = apply_change(ticket, Assignment("u-agent"), AGENT, NOW)
        assert updated is ticket
        assert entries == []


class TestTicketInvariants:
    def test_reopened_is_never_stored(self):
        with pytest.raises(ValueError):
            make_ticket(status=TicketStatus.REOPENED)

    def test_closed_at_requires_terminal_status(self):
        with pytest.raises(ValueError):
            make_ticket(status=TicketStatus.OPEN, closed_at=T0)

    def test_due_date_not_before_creation(self):
        with pytest.raises(ValueError):
            make_ticket(due_date=T0 - timedelta(hours=1))
