"""Tests for totals aggregation and per-button resolution."""

from __future__ import annotations

import itertools
from datetime import date

import pytest

from harvest_deck.aggregator import (
    AggregateTotals,
    resolve_account_totals,
    resolve_timer_buttons,
    resolve_timer_errors,
    week_bounds,
)
from harvest_deck.const import ERROR_LABEL
from harvest_deck.models import Position, RenderState

from .factories import (
    TODAY,
    YESTERDAY_STR,
    client_button,
    daily,
    make_entry,
    project,
    timer,
    weekly,
)


class TestWeekBounds:
    def test_midweek(self):
        assert week_bounds(date(2026, 2, 11)) == (date(2026, 2, 9), date(2026, 2, 16))

    def test_monday_is_its_own_start(self):
        assert week_bounds(date(2026, 2, 9))[0] == date(2026, 2, 9)

    def test_sunday_belongs_to_previous_monday(self):
        assert week_bounds(date(2026, 2, 15))[0] == date(2026, 2, 9)


class TestAggregateTotals:
    def test_two_entries_today(self):
        totals = AggregateTotals.for_day(TODAY)
        totals.add_entries(
            [make_entry(entry_id="1", hours=1.5), make_entry(entry_id="2", hours=2.25)]
        )
        assert totals.daily_hours == pytest.approx(3.75)
        assert totals.weekly_hours == pytest.approx(3.75)

    def test_only_today_counts_as_daily(self):
        totals = AggregateTotals.for_day(TODAY)
        totals.add_entries(
            [make_entry(hours=2.0), make_entry(hours=3.0, spent_date=YESTERDAY_STR)]
        )
        assert totals.daily_hours == pytest.approx(2.0)
        assert totals.weekly_hours == pytest.approx(5.0)

    def test_rounded_hours_are_summed(self):
        totals = AggregateTotals.for_day(TODAY)
        totals.add_entries([make_entry(hours=1.02, rounded_hours=1.25)])
        assert totals.weekly_hours == pytest.approx(1.25)

    def test_project_and_client_maps(self):
        totals = AggregateTotals.for_day(TODAY)
        totals.add_entries(
            [
                make_entry(hours=1.0, project_id="P1", client_id="C1"),
                make_entry(hours=2.0, project_id="P1", client_id="C2"),
                make_entry(hours=4.0, project_id="P2", client_id="C2"),
                make_entry(hours=8.0, project_id=None, client_id=None),
            ]
        )
        assert totals.project == {"P1": pytest.approx(3.0), "P2": pytest.approx(4.0)}
        assert totals.client == {"C1": pytest.approx(1.0), "C2": pytest.approx(6.0)}

    def test_processing_order_does_not_matter(self):
        entries = [
            make_entry(entry_id="1", hours=0.25, project_id="P1", client_id="C1"),
            make_entry(entry_id="2", hours=1.5, project_id="P2", client_id="C1"),
            make_entry(entry_id="3", hours=2.75, spent_date=YESTERDAY_STR, project_id="P1"),
            make_entry(entry_id="4", hours=0.5, project_id="P3", client_id="C2"),
        ]
        results = []
        for order in itertools.permutations(entries):
            totals = AggregateTotals.for_day(TODAY)
            totals.add_entries(order)
            results.append(totals)

        first = results[0]
        for totals in results[1:]:
            assert totals.weekly_hours == pytest.approx(first.weekly_hours)
            assert totals.daily_hours == pytest.approx(first.daily_hours)
            assert totals.project == pytest.approx(first.project)
            assert totals.client == pytest.approx(first.client)

    def test_running_entry_marks_account_active(self):
        totals = AggregateTotals.for_day(TODAY)
        account = totals.add_entries([make_entry(is_running=True)])
        assert account.account_active
        assert totals.any_active

        account = totals.add_entries([make_entry()])
        assert not account.account_active
        assert not totals.account_active
        assert totals.any_active
        assert totals.accounts_processed == 2


class TestResolveAccountTotals:
    def test_daily_project_client_resolve_immediately(self):
        buttons = [
            ("d", daily("A1")),
            ("p", project("A1", project_id="10")),
            ("c", client_button("A1", client_id="30")),
            ("w", weekly("A1")),
        ]
        totals = AggregateTotals.for_day(TODAY)
        updates = dict(
            resolve_account_totals(
                "A1", [make_entry(hours=1.5)], totals, buttons, is_last=False
            )
        )
        assert set(updates) == {"d", "p", "c"}
        assert updates["d"].hours == pytest.approx(1.5)
        assert updates["d"].show_time
        assert updates["d"].separator == "\n"

    def test_weekly_waits_for_last_account(self):
        buttons = [("w", weekly("A1"))]
        totals = AggregateTotals.for_day(TODAY)
        first = resolve_account_totals(
            "A1", [make_entry(hours=1.0)], totals, buttons, is_last=False
        )
        second = resolve_account_totals(
            "A2", [make_entry(hours=2.0, is_running=True)], totals, buttons, is_last=True
        )
        assert first == []
        assert len(second) == 1
        context, update = second[0]
        assert context == "w"
        assert update.hours == pytest.approx(3.0)
        assert update.state is RenderState.ACTIVE

    def test_other_accounts_hours_stay_out_of_daily(self):
        buttons = [("d1", daily("A1")), ("d2", daily("A2"))]
        totals = AggregateTotals.for_day(TODAY)
        resolve_account_totals("A1", [make_entry(hours=5.0)], totals, buttons, is_last=False)
        updates = dict(
            resolve_account_totals("A2", [make_entry(hours=1.0)], totals, buttons, is_last=True)
        )
        assert list(updates) == ["d2"]
        assert updates["d2"].hours == pytest.approx(1.0)

    def test_missing_project_shows_zero(self):
        buttons = [("p", project("A1", project_id="nope"))]
        totals = AggregateTotals.for_day(TODAY)
        updates = resolve_account_totals("A1", [make_entry()], totals, buttons, is_last=True)
        assert updates[0][1].hours == 0.0

    def test_position_filter(self):
        buttons = [("d", daily("A1", row=1, column=0)), ("p", project("A1", row=1, column=2))]
        totals = AggregateTotals.for_day(TODAY)
        updates = resolve_account_totals(
            "A1", [make_entry()], totals, buttons, is_last=True, position=Position(1, 2)
        )
        assert [context for context, _ in updates] == ["p"]


class TestResolveTimerButtons:
    def test_matching_button_is_active_with_elapsed_hours(self):
        buttons = [("on", timer(project_id="10", task_id="20")), ("off", timer(task_id="21"))]
        running = [make_entry(hours=1.83, project_id="10", task_id="20", is_running=True)]
        updates = dict(resolve_timer_buttons("A1", running, buttons))
        assert updates["on"].state is RenderState.ACTIVE
        assert updates["on"].hours == pytest.approx(1.83)
        assert updates["on"].show_time
        assert updates["off"].state is RenderState.IDLE
        assert not updates["off"].show_time

    def test_nothing_running_paints_account_idle(self):
        buttons = [("a", timer("A1")), ("b", timer("A2"))]
        updates = resolve_timer_buttons("A1", [], buttons)
        assert [context for context, _ in updates] == ["a"]
        assert updates[0][1].state is RenderState.IDLE

    def test_errors_alert_every_timer_of_account(self):
        buttons = [("a", timer("A1")), ("b", timer("A2")), ("d", daily("A1"))]
        updates = resolve_timer_errors("A1", buttons, error_label=True)
        assert len(updates) == 1
        context, update = updates[0]
        assert context == "a"
        assert update.label == ERROR_LABEL
        assert update.alert
        assert update.state is RenderState.ERROR
