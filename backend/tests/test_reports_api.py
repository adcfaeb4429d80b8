"""
Test saved report API endpoints
"""
import csv
import io

import pytest
from sqlalchemy import select

from cmms_reports.models.audit_log import AuditLog

REPORTS_URL = "/api/v1/reports"

COMPLETED_REPORT = {
    "name": "Completed work orders",
    "data_source": "work_orders",
    "configuration": {
        "columns": ["woNumber", "status", "actualCost"],
        "filters": [{"field": "status", "operator": "eq", "value": "completed"}],
        "sorting": [{"field": "woNumber", "order": "asc"}],
    },
}


def auth_headers(user):
    return {"X-User-Id": str(user.id)}


class TestIdentity:
    """Test caller identification."""

    @pytest.mark.asyncio
    async def test_missing_identity(self, client):
        """Test that requests without a user are rejected."""
        response = await client.get(REPORTS_URL)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, client, user):
        """Test that an unknown user id is rejected."""
        response = await client.get(REPORTS_URL, headers={"X-User-Id": "9999"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Test the health endpoint needs no identity."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestColumnDiscovery:
    """Test data source and column listing."""

    @pytest.mark.asyncio
    async def test_data_sources(self, client, user):
        """Test listing data sources."""
        response = await client.get(f"{REPORTS_URL}/data-sources", headers=auth_headers(user))

        assert response.status_code == 200
        assert {"value": "asset", "label": "Assets"} in response.json()

    @pytest.mark.asyncio
    async def test_columns_by_alias(self, client, user):
        """Test listing columns of a data source by its plural key."""
        response = await client.get(f"{REPORTS_URL}/columns/work_orders", headers=auth_headers(user))

        assert response.status_code == 200
        fields = [column["field"] for column in response.json()]
        assert "woNumber" in fields
        assert "actualCost" in fields

    @pytest.mark.asyncio
    async def test_unknown_data_source(self, client, user):
        """Test that an unregistered data source is a client error."""
        response = await client.get(f"{REPORTS_URL}/columns/vendors", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["error_code"] == "UNKNOWN_DATA_SOURCE"


class TestSavedReports:
    """Test saved report definition management."""

    @pytest.mark.asyncio
    async def test_create_report(self, client, db_session, user):
        """Test saving a valid report."""
        response = await client.post(REPORTS_URL, json=COMPLETED_REPORT, headers=auth_headers(user))

        assert response.status_code == 201
        body = response.json()
        assert body["report_type"] == "work_order"
        assert body["created_by_id"] == user.id
        assert body["organization_id"] == user.organization_id
        assert body["configuration"]["columns"] == ["woNumber", "status", "actualCost"]
        assert body["last_generated_at"] is None

        entries = (await db_session.execute(
            select(AuditLog).where(AuditLog.entity_type == "SavedReport")
        )).scalars().all()
        assert [entry.action for entry in entries] == ["CREATE"]

    @pytest.mark.asyncio
    async def test_create_with_invalid_filter_field(self, client, user):
        """Test that invalid configurations are not saved."""
        payload = {
            **COMPLETED_REPORT,
            "configuration": {
                "columns": ["woNumber"],
                "filters": [{"field": "costCenter", "operator": "eq", "value": "A1"}],
            },
        }

        response = await client.post(REPORTS_URL, json=payload, headers=auth_headers(user))
        listing = await client.get(REPORTS_URL, headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_FILTER_FIELD"
        assert response.json()["field"] == "costCenter"
        assert listing.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_create_with_no_columns(self, client, user):
        """Test that a report needs columns."""
        payload = {**COMPLETED_REPORT, "configuration": {"columns": []}}

        response = await client.post(REPORTS_URL, json=payload, headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["error_code"] == "EMPTY_COLUMN_SELECTION"

    @pytest.mark.asyncio
    async def test_create_scheduled_without_frequency(self, client, user):
        """Test schedule consistency."""
        payload = {**COMPLETED_REPORT, "is_scheduled": True}

        response = await client.post(REPORTS_URL, json=payload, headers=auth_headers(user))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_visibility(self, client, user, colleague, outsider, make_report):
        """Test that users see their own reports and public ones from their organization."""
        await make_report({"columns": ["woNumber"]}, name="Private")
        await make_report({"columns": ["woNumber"]}, name="Shared", is_public=True)

        own = await client.get(REPORTS_URL, headers=auth_headers(user))
        peer = await client.get(REPORTS_URL, headers=auth_headers(colleague))
        other = await client.get(REPORTS_URL, headers=auth_headers(outsider))

        assert sorted(item["name"] for item in own.json()["items"]) == ["Private", "Shared"]
        assert [item["name"] for item in peer.json()["items"]] == ["Shared"]
        assert other.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_list_search(self, client, user, make_report):
        """Test name search and data source filter."""
        await make_report({"columns": ["woNumber"]}, name="Open backlog")
        await make_report({"columns": ["name"]}, data_source="asset", name="Asset register")

        by_name = await client.get(REPORTS_URL, params={"search": "backlog"}, headers=auth_headers(user))
        by_source = await client.get(REPORTS_URL, params={"data_source": "assets"}, headers=auth_headers(user))

        assert [item["name"] for item in by_name.json()["items"]] == ["Open backlog"]
        assert [item["name"] for item in by_source.json()["items"]] == ["Asset register"]

    @pytest.mark.asyncio
    async def test_get_report_access(self, client, user, colleague, outsider, make_report):
        """Test read access to a private report."""
        report = await make_report({"columns": ["woNumber"]})
        url = f"{REPORTS_URL}/{report.id}"

        assert (await client.get(url, headers=auth_headers(user))).status_code == 200
        assert (await client.get(url, headers=auth_headers(colleague))).status_code == 403
        assert (await client.get(url, headers=auth_headers(outsider))).status_code == 403
        assert (await client.get(f"{REPORTS_URL}/9999", headers=auth_headers(user))).status_code == 404

    @pytest.mark.asyncio
    async def test_report_columns(self, client, user, make_report):
        """Test listing the columns of a saved report's data source."""
        report = await make_report({"columns": ["name"]}, data_source="inventory")

        response = await client.get(f"{REPORTS_URL}/{report.id}/columns", headers=auth_headers(user))

        assert response.status_code == 200
        assert {"field": "unit", "label": "Unit", "type": "string"} in response.json()

    @pytest.mark.asyncio
    async def test_update_merges_configuration(self, client, user):
        """Test that a partial configuration update keeps the other keys."""
        created = (await client.post(REPORTS_URL, json=COMPLETED_REPORT, headers=auth_headers(user))).json()

        response = await client.patch(
            f"{REPORTS_URL}/{created['id']}",
            json={"name": "Completed (by cost)", "configuration": {
                "sorting": [{"field": "actualCost", "order": "desc"}],
            }},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Completed (by cost)"
        assert body["configuration"]["sorting"] == [{"field": "actualCost", "order": "desc"}]
        assert body["configuration"]["filters"] == COMPLETED_REPORT["configuration"]["filters"]

    @pytest.mark.asyncio
    async def test_invalid_update_is_rejected(self, client, user):
        """Test that an update producing an invalid configuration changes nothing."""
        created = (await client.post(REPORTS_URL, json=COMPLETED_REPORT, headers=auth_headers(user))).json()
        url = f"{REPORTS_URL}/{created['id']}"

        response = await client.patch(
            url,
            json={"configuration": {"group_by": ["site"]}},
            headers=auth_headers(user),
        )
        stored = (await client.get(url, headers=auth_headers(user))).json()

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_GROUP_BY_FIELD"
        assert stored["configuration"]["group_by"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["name", "is_public", "is_scheduled"])
    async def test_update_cannot_clear_required_fields(self, client, user, field):
        """Test that required fields cannot be set to null."""
        created = (await client.post(REPORTS_URL, json=COMPLETED_REPORT, headers=auth_headers(user))).json()
        url = f"{REPORTS_URL}/{created['id']}"

        response = await client.patch(url, json={field: None}, headers=auth_headers(user))
        stored = (await client.get(url, headers=auth_headers(user))).json()

        assert response.status_code == 422
        assert stored["name"] == "Completed work orders"
        assert stored["is_public"] is False

    @pytest.mark.asyncio
    async def test_update_clears_optional_fields(self, client, user):
        """Test that nullable fields can still be cleared."""
        payload = {**COMPLETED_REPORT, "description": "Closed out jobs"}
        created = (await client.post(REPORTS_URL, json=payload, headers=auth_headers(user))).json()

        response = await client.patch(
            f"{REPORTS_URL}/{created['id']}", json={"description": None}, headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.json()["description"] is None

    @pytest.mark.asyncio
    async def test_only_creator_can_modify(self, client, colleague, make_report):
        """Test that shared reports are read-only for others."""
        report = await make_report({"columns": ["woNumber"]}, is_public=True)
        url = f"{REPORTS_URL}/{report.id}"

        patched = await client.patch(url, json={"name": "Mine now"}, headers=auth_headers(colleague))
        deleted = await client.delete(url, headers=auth_headers(colleague))

        assert patched.status_code == 403
        assert deleted.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_report(self, client, user, make_report):
        """Test deleting a report."""
        report = await make_report({"columns": ["woNumber"]})
        url = f"{REPORTS_URL}/{report.id}"

        response = await client.delete(url, headers=auth_headers(user))

        assert response.status_code == 204
        assert (await client.get(url, headers=auth_headers(user))).status_code == 404


class TestReportExecutionApi:
    """Test executing saved reports over HTTP."""

    @pytest.mark.asyncio
    async def test_execute_json(self, client, user, work_orders):
        """Test executing a report and reading rows, metadata and pagination."""
        created = (await client.post(REPORTS_URL, json=COMPLETED_REPORT, headers=auth_headers(user))).json()

        response = await client.post(
            f"{REPORTS_URL}/{created['id']}/execute",
            json={"page": 2, "limit": 4},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        body = response.json()
        assert [row["woNumber"] for row in body["data"]] == ["WO-0011", "WO-0013", "WO-0016", "WO-0018"]
        assert body["pagination"] == {"page": 2, "limit": 4, "total": 10, "total_pages": 3}
        assert body["metadata"]["data_source"] == "work_order"

        stored = (await client.get(f"{REPORTS_URL}/{created['id']}", headers=auth_headers(user))).json()
        assert stored["last_generated_at"] is not None

    @pytest.mark.asyncio
    async def test_execute_without_body(self, client, user, work_orders, make_report):
        """Test that overrides are optional."""
        report = await make_report({"columns": ["woNumber"]})

        response = await client.post(f"{REPORTS_URL}/{report.id}/execute", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 25

    @pytest.mark.asyncio
    async def test_execute_csv(self, client, user, work_orders):
        """Test downloading a report as CSV."""
        created = (await client.post(REPORTS_URL, json=COMPLETED_REPORT, headers=auth_headers(user))).json()

        response = await client.post(
            f"{REPORTS_URL}/{created['id']}/execute",
            json={"format": "csv", "limit": 2},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows == [
            ["WO Number", "Status", "Actual Cost"],
            ["WO-0001", "completed", "10.0"],
            ["WO-0003", "completed", "30.0"],
        ]

    @pytest.mark.asyncio
    async def test_configuration_cannot_be_overridden(self, client, user, make_report):
        """Test that only date range, page, limit and format are accepted at run time."""
        report = await make_report({"columns": ["woNumber"]})

        response = await client.post(
            f"{REPORTS_URL}/{report.id}/execute",
            json={"columns": ["title"]},
            headers=auth_headers(user),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_execute_invalid_stored_configuration(self, client, user, make_report):
        """Test that a stored report which no longer validates fails cleanly."""
        report = await make_report({
            "columns": ["woNumber"],
            "aggregations": [{"field": "title", "function": "sum"}],
        })

        response = await client.post(f"{REPORTS_URL}/{report.id}/execute", headers=auth_headers(user))

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_AGGREGATION_FIELD"
        assert response.json()["field"] == "title"

    @pytest.mark.asyncio
    async def test_execute_limit_too_large(self, client, user, make_report):
        """Test the page size cap."""
        report = await make_report({"columns": ["woNumber"]})

        response = await client.post(
            f"{REPORTS_URL}/{report.id}/execute", json={"limit": 5000}, headers=auth_headers(user),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PAGINATION"
        assert response.json()["detail"] == "'limit' must not exceed 1000, got 5000"

    @pytest.mark.asyncio
    async def test_outsider_cannot_execute(self, client, outsider, make_report):
        """Test that reports of other organizations cannot be run."""
        report = await make_report({"columns": ["woNumber"]}, is_public=True)

        response = await client.post(f"{REPORTS_URL}/{report.id}/execute", headers=auth_headers(outsider))
        assert response.status_code == 403
