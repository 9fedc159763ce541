"""SLA policy: targets, due dates, compliance and breach."""

from datetime import timedelta
from itertools import product

import pytest

from src.config import Impact, Priority, ServiceLevel, TicketStatus, Urgency
from src.sla.domain import (
    DEFAULT_SLA_TARGETS,
    SLACalculator,
    SLAConfig,
    SLATarget,
    ServiceLevelTargets,
)
from tests.conftest import T0


class TestTargets:
    def test_default_targets(self):
        assert SLACalculator.resolve_sla_targets(ServiceLevel.STANDARD) == SLATarget(8, 40)
        assert SLACalculator.resolve_sla_targets(ServiceLevel.PREMIUM) == SLATarget(4, 16)
        assert SLACalculator.resolve_sla_targets(ServiceLevel.CRITICAL_SUPPORT) == SLATarget(0, 4)

    def test_config_overrides_one_level_and_keeps_defaults_for_others(self):
        config = SLAConfig(service_levels={
            ServiceLevel.PREMIUM: ServiceLevelTargets(response_hours=2, resolution_hours=12),
        })

        assert config.get_target(ServiceLevel.PREMIUM) == SLATarget(2, 12)
        assert config.get_target(ServiceLevel.STANDARD) == DEFAULT_SLA_TARGETS[ServiceLevel.STANDARD]

    def test_empty_config_equals_defaults(self):
        config = SLAConfig()
        for level in ServiceLevel:
            assert SLACalculator.resolve_sla_targets(level, config) == DEFAULT_SLA_TARGETS[level]

    def test_default_config_lists_every_level(self):
        assert set(SLAConfig().service_levels) == set(ServiceLevel)
        assert set(SLAConfig(**{}).service_levels) == set(ServiceLevel)

    def test_due_date_with_default_config(self):
        due = SLACalculator.compute_due_date(T0, ServiceLevel.STANDARD, SLAConfig())
        assert due == T0 + timedelta(hours=40)

    def test_negative_hours_rejected(self):
        with pytest.raises(ValueError):
            ServiceLevelTargets(response_hours=-1, resolution_hours=4)


class TestDueDate:
    @pytest.mark.parametrize("level,hours", [
        (ServiceLevel.STANDARD, 40),
        (ServiceLevel.PREMIUM, 16),
        (ServiceLevel.CRITICAL_SUPPORT, 4),
    ])
    def test_due_date_is_created_plus_resolution_hours(self, level, hours):
        assert SLACalculator.compute_due_date(T0, level) == T0 + timedelta(hours=hours)

    def test_due_date_deterministic_and_not_before_creation(self):
        for priority, impact, urgency, level in product(Priority, Impact, Urgency, ServiceLevel):
            first = SLACalculator.compute_due_date(T0, level)
            second = SLACalculator.compute_due_date(T0, level)
            assert first == second
            assert first >= T0


class TestCompliance:
    def test_open_ticket_has_no_verdict(self):
        assert SLACalculator.is_compliant(None, T0) is None

    def test_closed_on_due_date_is_compliant(self):
        assert SLACalculator.is_compliant(T0, T0) is True

    def test_closed_after_due_date_is_not_compliant(self):
        assert SLACalculator.is_compliant(T0 + timedelta(seconds=1), T0) is False

    def test_missing_due_date_is_never_overdue(self):
        assert SLACalculator.is_compliant(T0, None) is True

    def test_critical_support_scenario(self):
        due = SLACalculator.compute_due_date(T0, ServiceLevel.CRITICAL_SUPPORT)

        assert due == T0 + timedelta(hours=4)
        assert SLACalculator.is_compliant(T0 + timedelta(hours=3), due) is True
        assert SLACalculator.is_compliant(T0 + timedelta(hours=5), due) is False


class TestBreach:
    def test_open_ticket_past_due_is_breached(self):
        assert SLACalculator.is_breached(TicketStatus.OPEN, T0, T0 + timedelta(minutes=1))

    def test_not_breached_at_due_instant(self):
        assert not SLACalculator.is_breached(TicketStatus.OPEN, T0, T0)

    @pytest.mark.parametrize("status", [TicketStatus.RESOLVED, TicketStatus.CLOSED])
    def test_terminal_ticket_never_breached(self, status):
        assert not SLACalculator.is_breached(status, T0, T0 + timedelta(days=30))

    def test_no_due_date_never_breached(self):
        assert not SLACalculator.is_breached(TicketStatus.NEW, None, T0)


class TestResponseCompliance:
    def test_inside_window_without_response_is_undecided(self):
        verdict = SLACalculator.is_response_compliant(
            T0, None, ServiceLevel.STANDARD, T0 + timedelta(hours=1)
        )
        assert verdict is None

    def test_window_passed_without_response_is_violation(self):
        verdict = SLACalculator.is_response_compliant(
            T0, None, ServiceLevel.PREMIUM, T0 + timedelta(hours=5)
        )
        assert verdict is False

    def test_response_inside_window(self):
        verdict = SLACalculator.is_response_compliant(
            T0, T0 + timedelta(hours=3), ServiceLevel.PREMIUM, T0 + timedelta(days=2)
        )
        assert verdict is True

    def test_late_response(self):
        verdict = SLACalculator.is_response_compliant(
            T0, T0 + timedelta(hours=9), ServiceLevel.STANDARD, T0 + timedelta(days=2)
        )
        assert verdict is False


class TestClassificationSuggestion:
    @pytest.mark.parametrize("impact,urgency,expected", [
        (Impact.MINOR, Urgency.LOW, Priority.LOW),
        (Impact.MODERATE, Urgency.NORMAL, Priority.MEDIUM),
        (Impact.MAJOR, Urgency.NORMAL, Priority.HIGH),
        (Impact.MAJOR, Urgency.IMMEDIATE, Priority.CRITICAL),
        (Impact.CRITICAL, Urgency.LOW, Priority.HIGH),
        (Impact.CRITICAL, Urgency.HIGH, Priority.CRITICAL),
    ])
    def test_priority_matrix(self, impact, urgency, expected):
        assert SLACalculator.derive_priority(impact, urgency) == expected

    @pytest.mark.parametrize("priority,impact,expected", [
        (Priority.CRITICAL, Impact.MINOR, ServiceLevel.CRITICAL_SUPPORT),
        (Priority.LOW, Impact.CRITICAL, ServiceLevel.CRITICAL_SUPPORT),
        (Priority.HIGH, Impact.MINOR, ServiceLevel.PREMIUM),
        (Priority.LOW, Impact.MAJOR, ServiceLevel.PREMIUM),
        (Priority.MEDIUM, Impact.MODERATE, ServiceLevel.STANDARD),
    ])
    def test_service_level(self, priority, impact, expected):
        assert SLACalculator.derive_service_level(priority, impact) == expected
