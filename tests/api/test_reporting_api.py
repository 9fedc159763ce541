"""SLA, report, saved search and health routes."""

import csv
import io

import pytest

from tests.api.conftest import auth


async def _open(client, actor, body, **overrides):
    response = await client.post("/tickets", json={**body, **overrides}, headers=auth(actor))
    assert response.status_code == 201, response.text
    return response.json()


class TestSLARoutes:
    async def test_targets(self, client, requester):
        response = await client.get("/sla/targets", headers=auth(requester))

        targets = {t["service_level"]: t for t in response.json()}
        assert targets["STANDARD"]["response_hours"] == 8
        assert targets["STANDARD"]["resolution_hours"] == 40
        assert targets["PREMIUM"]["resolution_hours"] == 16
        assert targets["CRITICAL_SUPPORT"]["resolution_hours"] == 4

    async def test_single_target(self, client, requester):
        response = await client.get("/sla/targets/PREMIUM", headers=auth(requester))

        assert response.json() == {"service_level": "PREMIUM", "response_hours": 4, "resolution_hours": 16}

    async def test_unknown_service_level_is_422(self, client, requester):
        response = await client.get("/sla/targets/GOLD", headers=auth(requester))
        assert response.status_code == 422

    @pytest.mark.parametrize("impact,urgency,priority,level", [
        ("CRITICAL", "IMMEDIATE", "CRITICAL", "CRITICAL_SUPPORT"),
        ("MAJOR", "NORMAL", "HIGH", "PREMIUM"),
        ("MINOR", "LOW", "LOW", "STANDARD"),
    ])
    async def test_suggestion(self, client, agent, impact, urgency, priority, level):
        response = await client.get(
            f"/sla/suggest?impact={impact}&urgency={urgency}", headers=auth(agent)
        )

        body = response.json()
        assert body["priority"] == priority
        assert body["service_level"] == level
        assert body["target"]["service_level"] == level

    async def test_breaches_are_staff_only(self, client, requester, agent, new_ticket):
        await _open(client, requester, new_ticket, service_level="CRITICAL_SUPPORT")

        as_requester = await client.get("/sla/breaches", headers=auth(requester))
        as_agent = await client.get("/sla/breaches", headers=auth(agent))

        assert as_requester.status_code == 403
        assert as_agent.status_code == 200
        assert as_agent.json() == []


class TestReportRoutes:
    async def test_ticket_report_counts(self, client, requester, other_user, manager, agent, new_ticket):
        first = await _open(client, requester, new_ticket)
        await _open(client, requester, new_ticket, category="SOFTWARE")
        await _open(client, other_user, new_ticket)
        await client.post(
            f"/tickets/{first['id']}/status",
            json={"status": "RESOLVED", "resolution": "Replaced disk"},
            headers=auth(agent),
        )

        response = await client.get("/reports/tickets", headers=auth(manager))

        report = response.json()
        assert report["counts"]["total"] == 3
        assert report["counts"]["new"] == 2
        assert report["counts"]["resolved"] == 1
        by_category = {row["key"]: row["count"] for row in report["by_category"]}
        assert by_category == {"HARDWARE": 2, "SOFTWARE": 1}
        assert [p["tickets"] for p in report["resolution_trend"]] == [1]
        assert [(p["tickets"], p["resolved"]) for p in report["ticket_trend"]] == [(3, 1)]
        assert report["sla_metrics"]["resolution_time_compliance"] == 100

    async def test_end_user_report_is_scoped(self, client, requester, other_user, new_ticket):
        await _open(client, requester, new_ticket)
        await _open(client, other_user, new_ticket)

        response = await client.get("/reports/tickets", headers=auth(requester))

        assert response.json()["counts"]["total"] == 1
        assert response.json()["filter"]["requester_id"] == requester.id

    async def test_report_filters_by_category(self, client, requester, manager, new_ticket):
        await _open(client, requester, new_ticket)
        await _open(client, requester, new_ticket, category="NETWORK")

        response = await client.get("/reports/tickets?category=NETWORK", headers=auth(manager))

        assert response.json()["counts"]["total"] == 1

    async def test_inverted_date_range_is_rejected(self, client, manager):
        response = await client.get(
            "/reports/tickets?date_from=2026-03-10T00:00:00Z&date_to=2026-03-01T00:00:00Z",
            headers=auth(manager),
        )
        assert response.status_code == 422

    async def test_naive_date_bound_is_read_as_utc(self, client, requester, manager, new_ticket):
        await _open(client, requester, new_ticket)

        response = await client.get(
            "/reports/tickets?date_from=2026-01-01T00:00:00Z&date_to=2999-01-01T00:00:00",
            headers=auth(manager),
        )

        assert response.status_code == 200
        assert response.json()["counts"]["total"] == 1

    async def test_naive_inverted_range_is_rejected(self, client, manager):
        response = await client.get(
            "/reports/tickets?date_from=2026-03-10T00:00:00Z&date_to=2026-03-01T00:00:00",
            headers=auth(manager),
        )
        assert response.status_code == 422

    async def test_export_json(self, client, requester, manager, new_ticket):
        ticket = await _open(client, requester, new_ticket)

        response = await client.get("/reports/tickets/export", headers=auth(manager))

        rows = response.json()
        assert [row["ticket_number"] for row in rows] == [ticket["ticket_number"]]
        assert rows[0]["status"] == "NEW"

    async def test_export_csv(self, client, requester, manager, new_ticket):
        await _open(client, requester, new_ticket)
        await _open(client, requester, new_ticket, title="Second, with a comma")

        response = await client.get("/reports/tickets/export?format=csv", headers=auth(manager))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "tickets.csv" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0][:3] == ["ticket_number", "title", "status"]
        assert len(rows) == 3
        assert "Second, with a comma" in [row[1] for row in rows[1:]]

    async def test_sla_report(self, client, requester, agent, manager, new_ticket):
        ticket = await _open(client, requester, new_ticket)
        await _open(client, requester, new_ticket)
        await client.post(
            f"/tickets/{ticket['id']}/status",
            json={"status": "CLOSED", "resolution": "Done"},
            headers=auth(agent),
        )

        response = await client.get("/reports/sla", headers=auth(manager))

        report = response.json()
        assert report["total"] == 2
        assert report["compliance"] == 100
        assert report["violations"] == 0


class TestSavedSearchRoutes:
    async def _create(self, client, actor, **body):
        payload = {"name": "Open hardware", "criteria": {"category": ["HARDWARE"]}}
        payload.update(body)
        response = await client.post("/saved-searches", json=payload, headers=auth(actor))
        assert response.status_code == 201, response.text
        return response.json()

    async def test_create_and_get(self, client, agent):
        created = await self._create(client, agent)

        fetched = await client.get(f"/saved-searches/{created['id']}", headers=auth(agent))

        assert fetched.json()["owner_id"] == agent.id
        assert fetched.json()["criteria"]["category"] == ["HARDWARE"]
        assert fetched.json()["is_public"] is False

    async def test_unknown_criteria_field_rejected(self, client, agent):
        response = await client.post(
            "/saved-searches",
            json={"name": "Bad", "criteria": {"colour": "red"}},
            headers=auth(agent),
        )
        assert response.status_code == 422

    async def test_private_search_hidden_from_others(self, client, agent, requester):
        created = await self._create(client, agent)

        response = await client.get(f"/saved-searches/{created['id']}", headers=auth(requester))

        assert response.status_code == 403

    async def test_public_search_listed_and_executed_within_visibility(
        self, client, agent, requester, other_user, new_ticket
    ):
        own = await _open(client, requester, new_ticket)
        await _open(client, other_user, new_ticket)
        search = await self._create(client, agent, is_public=True)

        listed = await client.get("/saved-searches", headers=auth(requester))
        executed = await client.get(f"/saved-searches/{search['id']}/execute", headers=auth(requester))

        assert [s["id"] for s in listed.json()] == [search["id"]]
        result = executed.json()
        assert result["total"] == 1
        assert [t["id"] for t in result["items"]] == [own["id"]]
        assert result["search"]["id"] == search["id"]

    async def test_duplicate_is_private_copy(self, client, agent, requester):
        search = await self._create(client, agent, is_public=True)

        response = await client.post(f"/saved-searches/{search['id']}/duplicate", headers=auth(requester))

        copy = response.json()
        assert response.status_code == 201
        assert copy["name"] == "Open hardware (Copy)"
        assert copy["owner_id"] == requester.id
        assert copy["is_public"] is False

    async def test_only_owner_updates_and_deletes(self, client, agent, second_agent):
        search = await self._create(client, agent, is_public=True)

        foreign_update = await client.patch(
            f"/saved-searches/{search['id']}", json={"name": "Mine now"}, headers=auth(second_agent)
        )
        foreign_delete = await client.delete(f"/saved-searches/{search['id']}", headers=auth(second_agent))
        renamed = await client.patch(
            f"/saved-searches/{search['id']}", json={"name": "Hardware backlog"}, headers=auth(agent)
        )
        deleted = await client.delete(f"/saved-searches/{search['id']}", headers=auth(agent))
        gone = await client.get(f"/saved-searches/{search['id']}", headers=auth(agent))

        assert foreign_update.status_code == 403
        assert foreign_delete.status_code == 403
        assert renamed.json()["name"] == "Hardware backlog"
        assert deleted.status_code == 204
        assert gone.status_code == 404

    async def test_popular_lists_public_searches(self, client, agent, manager):
        public = await self._create(client, agent, is_public=True)
        await self._create(client, manager, name="Private queue")

        response = await client.get("/saved-searches/popular", headers=auth(manager))

        assert [s["id"] for s in response.json()] == [public["id"]]


class TestServiceRoutes:
    async def test_health(self, client):
        response = await client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert set(body["checks"]) == {"sla_config", "sla_config_watcher", "sla_scheduler"}

    async def test_root_lists_modules(self, client):
        response = await client.get("/")

        assert set(response.json()["modules"]) == {
            "tickets", "sla", "reports", "saved_searches", "directory",
        }
