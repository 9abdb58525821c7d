"""Normalization tests.

Covers the property resolver, date normalizer, mapping table and the four
record normalizers (outages, alerts, tickets, changes). Pure functions over
in-memory records: no network, no store.
"""

from datetime import datetime, timedelta, timezone

import pytest

from normalize.alerts import alert_title, exclude_rows, normalize_alert, to_absolute_url
from normalize.changes import change_url, is_visible_state, normalize_change, normalize_changes
from normalize.dates import parse_instant, to_eta, to_instant, to_optional_instant
from normalize.mapping import MappingTable, classify, classify_impact
from normalize.outages import normalize_outage, normalize_outages
from normalize.property import (
    FieldState,
    collapse_reference,
    field_at,
    label_of,
    lookup,
    raw_of,
    resolve_property,
)
from normalize.tickets import normalize_ticket, ticket_url
from schemas.alert import AlertSeverity
from schemas.integration import ChangeFieldMapping, ImpactMappingEntry, OutageFieldMapping, ServiceNowConfig
from schemas.outage import UNKNOWN_ETA, ImpactLevel

NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────────────

def make_config(**overrides) -> ServiceNowConfig:
    defaults = dict(enabled=True, instance_url="https://acme.service-now.com/")
    return ServiceNowConfig(**{**defaults, **overrides})


def default_impact_table() -> MappingTable:
    return MappingTable.from_entries(ServiceNowConfig().impact_level_mapping)


def outage_record(**overrides) -> dict:
    defaults = {
        "sys_id": "a1b2c3",
        "number": "OUT0010023",
        "cmdb_ci": {"display_value": "Payments API", "value": "9f8e7d"},
        "type": "Outage",
        "begin": "2025-03-14 09:30:00",
        "end": "",
        "short_description": "Card payments failing",
        "u_bridge_url": "https://teams.example.com/bridge/1",
    }
    return {**defaults, **overrides}


def field(display, value=None) -> dict:
    """A field as returned with sysparm_display_value=all."""
    return {"display_value": display, "value": display if value is None else value}


# ── Property resolver ─────────────────────────────────────────────────────────

class TestPropertyResolver:
    def test_top_level_scalar(self):
        assert resolve_property({"state": "New"}, "state") == "New"

    def test_nested_path(self):
        record = {"status": {"indicator": "none"}}
        assert resolve_property(record, "status.indicator") == "none"

    def test_list_index_segment(self):
        record = {"components": [{"status": "operational"}]}
        assert resolve_property(record, "components.0.status") == "operational"

    def test_out_of_range_index_is_absent(self):
        assert lookup({"components": []}, "components.3.status").state is FieldState.ABSENT

    @pytest.mark.parametrize("record", [
        {},
        {"a": None},
        {"a": {"b": None}},
        None,
        [],
    ])
    def test_missing_or_null_segments_resolve_to_none(self, record):
        assert resolve_property(record, "a.b.c") is None

    def test_descending_into_scalar_is_unexpected_not_an_error(self):
        found = lookup({"a": "text"}, "a.b")
        assert found.state is FieldState.UNEXPECTED
        assert found.value is None

    def test_non_ascii_digit_index_is_absent(self):
        assert lookup({"components": [{"status": "ok"}]}, "components.².status").state is FieldState.ABSENT

    def test_field_at_keeps_structured_value(self):
        record = {"state": {"display_value": "Scheduled", "value": "-1"}}
        assert field_at(record, "state") == {"display_value": "Scheduled", "value": "-1"}
        assert field_at(record, "state.value") == "-1"
        assert field_at(record, "missing") is None

    def test_empty_path_is_absent(self):
        assert lookup({"a": 1}, "").state is FieldState.ABSENT
        assert lookup({"a": 1}, None).state is FieldState.ABSENT

    def test_reference_display_value_wins(self):
        assert resolve_property({"ci": {"display_value": "X", "value": "abc"}}, "ci") == "X"

    def test_reference_falls_back_to_value(self):
        assert resolve_property({"ci": {"value": "Y"}}, "ci") == "Y"

    def test_reference_empty_display_value_falls_through(self):
        assert collapse_reference({"display_value": "", "name": "", "value": "Z"}) == "Z"

    def test_reference_name_before_value(self):
        assert collapse_reference({"name": "N", "value": "V"}) == "N"

    def test_unrecognised_object_is_json_serialized(self):
        assert collapse_reference({"link": "https://x"}) == '{"link": "https://x"}'

    def test_false_is_present(self):
        found = lookup({"Acknowledged": False}, "Acknowledged")
        assert found.found
        assert found.value is False

    def test_label_and_raw_of_display_all_field(self):
        value = field("Scheduled", "-1")
        assert label_of(value) == "Scheduled"
        assert raw_of(value) == "-1"
        assert label_of(None) == ""
        assert raw_of("plain") == "plain"


# ── Date normalizer ───────────────────────────────────────────────────────────

class TestDateNormalizer:
    def test_servicenow_format_is_utc(self):
        assert to_instant("2025-03-14 09:30:00") == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    def test_iso_with_z(self):
        assert to_instant("2025-03-14T09:30:00.000Z") == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        assert to_instant("2025-03-14T11:30:00+02:00") == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    def test_rfc2822(self):
        assert to_instant("Fri, 14 Mar 2025 09:30:00 GMT") == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    def test_epoch_milliseconds_and_seconds(self):
        expected = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
        seconds = int(expected.timestamp())
        assert to_instant(seconds * 1000) == expected
        assert to_instant(seconds) == expected
        assert to_instant(str(seconds * 1000)) == expected

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "   ",
        "not a date",
        "²",
        "--5",
        "0001-01-01T00:00:00+05:00",
        "9999-12-31T23:00:00-05:00",
        float("nan"),
        float("inf"),
    ])
    def test_empty_or_garbage_falls_back_to_injected_now(self, raw):
        assert to_instant(raw, now=NOW) == NOW

    def test_fallback_without_injected_clock_is_current_time(self):
        before = datetime.now(timezone.utc)
        result = to_instant("not a date")
        after = datetime.now(timezone.utc)
        assert before - timedelta(seconds=1) <= result <= after + timedelta(seconds=1)

    def test_optional_instant_keeps_gaps(self):
        assert to_optional_instant("") is None
        assert to_optional_instant("garbage") is None
        assert to_optional_instant("2025-03-14 09:00:00") == datetime(2025, 3, 14, 9, tzinfo=timezone.utc)

    def test_eta_sentinel(self):
        assert to_eta(None) == UNKNOWN_ETA
        assert to_eta("  ") == UNKNOWN_ETA
        assert to_eta("2025-03-14 15:00:00") == datetime(2025, 3, 14, 15, tzinfo=timezone.utc)

    def test_aware_datetime_out_of_range_is_none(self):
        edge = datetime(1, 1, 1, tzinfo=timezone(timedelta(hours=5)))
        assert parse_instant(edge) is None

    def test_booleans_are_not_epochs(self):
        assert parse_instant(True) is None


# ── Mapping table ─────────────────────────────────────────────────────────────

class TestMappingTable:
    def test_case_and_whitespace_insensitive(self):
        table = default_impact_table()
        assert classify_impact(" Outage ", table) == classify_impact("outage", table) == classify_impact("OUTAGE", table)
        assert classify_impact("OUTAGE", table) is ImpactLevel.SEV1

    def test_unmapped_value_lands_in_default_bucket(self):
        assert classify_impact("planned", default_impact_table()) is ImpactLevel.DEGRADED

    def test_missing_value_lands_in_default_bucket(self):
        assert classify_impact(None, default_impact_table()) is ImpactLevel.DEGRADED

    def test_legacy_degradation_spelling_is_accepted(self):
        table = MappingTable.from_entries([
            ImpactMappingEntry(servicenow_value="Partial", dashboard_value="Degradation"),
        ])
        assert classify_impact("partial", table) is ImpactLevel.DEGRADED

    def test_mapping_to_unknown_dashboard_value_uses_default(self):
        table = MappingTable.from_entries([
            ImpactMappingEntry(servicenow_value="outage", dashboard_value="SEV9"),
        ])
        assert classify_impact("outage", table) is ImpactLevel.DEGRADED

    def test_entries_normalize_their_keys(self):
        table = MappingTable([("  Major ", "SEV2")])
        assert "major" in table
        assert table.classify("MAJOR", None) == "SEV2"

    def test_generic_classify_default(self):
        assert classify("x", {}, "fallback") == "fallback"


# ── Outages ───────────────────────────────────────────────────────────────────

class TestOutageNormalizer:
    def test_full_record(self):
        outage = normalize_outage(outage_record(), OutageFieldMapping(), default_impact_table(), now=NOW)
        assert outage.id == "OUT0010023"
        assert outage.system_name == "Payments API"
        assert outage.impact_level is ImpactLevel.SEV1
        assert outage.start_time == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
        assert outage.eta == UNKNOWN_ETA
        assert outage.description == "Card payments failing"
        assert outage.teams_bridge_url == "https://teams.example.com/bridge/1"

    def test_defaults_for_empty_record(self):
        outage = normalize_outage({"sys_id": "zz9"}, OutageFieldMapping(), default_impact_table(), now=NOW)
        assert outage.id == "zz9"
        assert outage.system_name == "Unknown System"
        assert outage.description == "No description provided."
        assert outage.impact_level is ImpactLevel.DEGRADED
        assert outage.start_time == NOW
        assert outage.eta == UNKNOWN_ETA
        assert outage.teams_bridge_url is None

    def test_custom_field_mapping(self):
        mapping = OutageFieldMapping(system_name="u_service.name")
        record = outage_record(u_service={"name": "Ledger"})
        assert normalize_outage(record, mapping, default_impact_table()).system_name == "Ledger"

    def test_wire_format_is_camel_case(self):
        wire = normalize_outage(outage_record(), OutageFieldMapping(), default_impact_table()).to_wire()
        assert set(wire) == {
            "id", "systemName", "impactLevel", "startTime", "eta", "description", "teamsBridgeUrl",
        }
        assert wire["impactLevel"] == "SEV1"
        assert wire["eta"] == "Unknown"

    def test_history_drops_blank_impact(self):
        records = [outage_record(), outage_record(number="OUT2", type=""), outage_record(number="OUT3", type=None)]
        outages = normalize_outages(
            records, OutageFieldMapping(), default_impact_table(), require_impact=True, now=NOW,
        )
        assert [o.id for o in outages] == ["OUT0010023"]

    def test_active_keeps_blank_impact_in_default_bucket(self):
        outages = normalize_outages([outage_record(type="")], OutageFieldMapping(), default_impact_table())
        assert outages[0].impact_level is ImpactLevel.DEGRADED


# ── Alerts ────────────────────────────────────────────────────────────────────

def alert_row(**overrides) -> dict:
    defaults = {
        "AlertObjectID": 42,
        "EntityCaption": "CPU Load",
        "RelatedNodeCaption": "core-sw-01",
        "EntityType": "Orion.APM.Component",
        "EntityDetailsUrl": "/Orion/View.aspx?NetObject=N:1",
        "TriggeredDateTime": "2025-03-14T09:30:00.000Z",
        "Acknowledged": False,
    }
    return {**defaults, **overrides}


class TestAlertNormalizer:
    def test_title_uses_upper_cased_node(self):
        assert alert_title(alert_row()) == "CORE-SW-01 — CPU Load"

    def test_node_entity_uses_its_caption_as_node(self):
        row = alert_row(RelatedNodeCaption=None, EntityType="Orion.Nodes", EntityCaption="db-01")
        assert alert_title(row) == "DB-01 — db-01"

    def test_title_without_node(self):
        row = alert_row(RelatedNodeCaption="", EntityType="Orion.Volumes", EntityCaption="C:\\ Disk")
        assert alert_title(row) == "C:\\ Disk"

    def test_missing_caption_defaults_to_alert(self):
        assert alert_title({}) == "Alert"

    def test_full_row(self):
        alert = normalize_alert(alert_row(), api_url="https://orion.example.com:17774", now=NOW)
        assert alert.id == "42"
        assert alert.affected_system == "https://orion.example.com:17774/Orion/View.aspx?NetObject=N:1"
        assert alert.timestamp == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
        assert alert.severity is AlertSeverity.INFO
        assert alert.validated is False
        assert alert.node_caption == "CORE-SW-01"
        assert alert.issue == "CPU Load"

    def test_fallback_row_without_trigger_time(self):
        row = alert_row()
        del row["TriggeredDateTime"]
        del row["Acknowledged"]
        alert = normalize_alert(row, now=NOW)
        assert alert.timestamp == NOW
        assert alert.validated is False

    @pytest.mark.parametrize("raw,expected", [(True, True), (1, True), ("true", True), ("0", False), (None, False)])
    def test_acknowledged_flag(self, raw, expected):
        assert normalize_alert(alert_row(Acknowledged=raw)).validated is expected


class TestAbsoluteUrl:
    def test_empty_is_not_available(self):
        assert to_absolute_url("") == "N/A"
        assert to_absolute_url(None) == "N/A"

    def test_ui_base_rehomes_absolute_links(self):
        url = to_absolute_url(
            "https://orion.example.com:17774/Orion/View.aspx?NetObject=N:1",
            ui_base="https://orion-ui.example.com/",
        )
        assert url == "https://orion-ui.example.com/Orion/View.aspx?NetObject=N:1"

    def test_ui_base_anchors_relative_links(self):
        url = to_absolute_url("/Orion/View.aspx", ui_base="https://orion-ui.example.com")
        assert url == "https://orion-ui.example.com/Orion/View.aspx"

    def test_absolute_link_kept_without_ui_base(self):
        assert to_absolute_url("https://elsewhere.example.com/x") == "https://elsewhere.example.com/x"

    def test_relative_link_anchored_on_api_host(self):
        url = to_absolute_url("/Orion/View.aspx", api_url="https://orion.example.com:17774/some/path")
        assert url == "https://orion.example.com:17774/Orion/View.aspx"

    def test_unresolvable_relative_link_passes_through(self):
        assert to_absolute_url("/Orion/View.aspx") == "/Orion/View.aspx"


class TestExcludeRows:
    def test_equality_and_prefix_case_insensitive(self):
        rows = [{"EntityCaption": c} for c in ("test-node-1", "Testing", "TEST", "Prod DB")]
        kept = exclude_rows(rows, ["Test"])
        assert [r["EntityCaption"] for r in kept] == ["Prod DB"]

    def test_blank_terms_ignored(self):
        rows = [{"EntityCaption": "anything"}]
        assert exclude_rows(rows, ["", "  "]) == rows


# ── Tickets ───────────────────────────────────────────────────────────────────

class TestTicketNormalizer:
    def test_full_record(self):
        record = {
            "sys_id": "abc123",
            "number": "INC0012345",
            "short_description": "Checkout down",
            "cmdb_ci": {"display_value": "Payments API", "value": "9f"},
            "state": "In Progress",
            "assignment_group": {"display_value": "NetOps"},
        }
        ticket = normalize_ticket(record, make_config())
        assert ticket.id == "INC0012345"
        assert ticket.affected_ci == "Payments API"
        assert ticket.assigned_team == "NetOps"
        assert ticket.ticket_url == "https://acme.service-now.com/nav_to.do?uri=incident.do?sys_id=abc123"

    def test_defaults(self):
        ticket = normalize_ticket({"sys_id": "x"}, make_config())
        assert (ticket.id, ticket.summary, ticket.affected_ci, ticket.status, ticket.assigned_team) == (
            "N/A", "No summary", "N/A", "New", "Unassigned",
        )

    def test_wire_keeps_affected_ci_name(self):
        wire = normalize_ticket({"sys_id": "x"}, make_config()).to_wire()
        assert "affectedCI" in wire
        assert "ticketUrl" in wire

    def test_ticket_url_uses_configured_table(self):
        assert ticket_url("https://acme.service-now.com", "u_major_incident", "s1") == (
            "https://acme.service-now.com/nav_to.do?uri=u_major_incident.do?sys_id=s1"
        )


# ── Changes ───────────────────────────────────────────────────────────────────

def change_record(**overrides) -> dict:
    defaults = {
        "sys_id": field("c0ffee"),
        "number": field("CHG0030001"),
        "short_description": field("Patch auth cluster"),
        "state": field("Scheduled", "-1"),
        "type": field("Normal", "normal"),
        "start_date": field("", ""),
        "end_date": field("", ""),
        "planned_start_date": field("03/14/2025 09:00:00 AM", "2025-03-14 09:00:00"),
        "planned_end_date": field("03/14/2025 11:00:00 AM", "2025-03-14 11:00:00"),
        "service_offering": field("Customer Authentication"),
    }
    return {**defaults, **overrides}


class TestChangeNormalizer:
    def test_planned_window_used_when_concrete_is_empty(self):
        change = normalize_change(change_record(), make_config())
        assert change.start == datetime(2025, 3, 14, 9, tzinfo=timezone.utc)
        assert change.end == datetime(2025, 3, 14, 11, tzinfo=timezone.utc)

    def test_concrete_window_wins(self):
        record = change_record(
            start_date=field("x", "2025-03-14 10:00:00"),
            end_date=field("x", "2025-03-14 10:30:00"),
        )
        change = normalize_change(record, make_config())
        assert change.start == datetime(2025, 3, 14, 10, tzinfo=timezone.utc)
        assert change.end == datetime(2025, 3, 14, 10, 30, tzinfo=timezone.utc)

    def test_missing_window_stays_absent(self):
        record = change_record(planned_start_date=field("", ""), planned_end_date=field("", ""))
        change = normalize_change(record, make_config())
        assert change.start is None
        assert change.end is None

    def test_labels_and_url(self):
        change = normalize_change(change_record(), make_config())
        assert change.id == "CHG0030001"
        assert change.number == "CHG0030001"
        assert change.title == change.summary == "Patch auth cluster"
        assert change.state == "Scheduled"
        assert change.type == "Normal"
        assert change.offering == "Customer Authentication"
        assert change.url == "https://acme.service-now.com/nav_to.do?uri=change_request.do%3Fsys_id%3Dc0ffee"
        assert change_url("https://acme.service-now.com", "c0ffee") == change.url

    def test_dotted_field_mapping(self):
        config = make_config(change_field_mapping=ChangeFieldMapping(offering="u_service.offering"))
        record = change_record(u_service={"offering": field("Payments")})
        assert normalize_change(record, config).offering == "Payments"

    def test_missing_summary_defaults(self):
        change = normalize_change(change_record(short_description=field("", "")), make_config())
        assert change.title == "Change"

    @pytest.mark.parametrize("label,visible", [
        ("Scheduled", True),
        ("Implement", True),
        ("Review", True),
        ("Canceled", False),
        ("Cancelled during review", False),
        ("New", False),
        ("", False),
    ])
    def test_state_filter(self, label, visible):
        assert is_visible_state({"state": field(label)}, "state") is visible

    def test_normalize_changes_filters_and_keeps_order(self):
        records = [
            change_record(number=field("CHG1")),
            change_record(number=field("CHG2"), state=field("Canceled", "4")),
            change_record(number=field("CHG3"), state=field("Implement", "0")),
        ]
        assert [c.number for c in normalize_changes(records, make_config())] == ["CHG1", "CHG3"]
