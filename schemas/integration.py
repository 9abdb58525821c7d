"""Integration configuration schemas.

These models describe how one deployment talks to its external systems:
which tables to query, which source fields feed which canonical fields,
how source impact values map onto dashboard buckets, and the *names* of
the secrets that hold credentials. Secret values never live here; they are
resolved from the secret store at call time.

Configuration is mutable and persisted outside this process. The engine
re-reads it on every request, so a saved change applies to the very next
dashboard refresh.

Defaults match a stock ServiceNow instance with the Outage [cmdb_ci_outage]
table, so an empty config document still yields usable (disabled) models.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ConfigModel(BaseModel):
    # Documents saved by the dashboard UI use camelCase keys; accept both.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OutageFieldMapping(_ConfigModel):
    """Canonical Outage field -> ServiceNow field path."""

    system_name: str = "cmdb_ci"
    impact_level: str = "type"
    start_time: str = "begin"
    eta: str = "end"
    description: str = "short_description"
    teams_bridge_url: str = "u_bridge_url"

    def source_fields(self) -> list[str]:
        return list(self.model_dump().values())


class TicketFieldMapping(_ConfigModel):
    """Canonical ServiceNowTicket field -> ServiceNow field path."""

    id: str = "number"
    summary: str = "short_description"
    affected_ci: str = "cmdb_ci"
    status: str = "state"
    assigned_team: str = "assignment_group"
    priority: str = "priority"

    def source_fields(self) -> list[str]:
        return list(self.model_dump().values())


class ChangeFieldMapping(_ConfigModel):
    """Canonical ScheduledChange field -> ServiceNow change_request field."""

    number: str = "number"
    summary: str = "short_description"
    state: str = "state"
    type: str = "type"
    start: str = "start_date"
    end: str = "end_date"
    planned_start: str = "planned_start_date"
    planned_end: str = "planned_end_date"
    offering: str = "service_offering"

    def source_fields(self) -> list[str]:
        return list(self.model_dump().values())


class ImpactMappingEntry(_ConfigModel):
    """One row of the impact lookup table.

    Attributes:
        servicenow_value: Value as ServiceNow displays it (e.g. "Outage").
            Matched case- and whitespace-insensitively.
        dashboard_value: ImpactLevel value it should render as
            (e.g. "SEV1").
    """

    servicenow_value: str
    dashboard_value: str


def _default_impact_mapping() -> list[ImpactMappingEntry]:
    return [
        ImpactMappingEntry(servicenow_value="outage", dashboard_value="SEV1"),
        ImpactMappingEntry(servicenow_value="degradation", dashboard_value="Degraded"),
    ]


class ServiceNowConfig(_ConfigModel):
    """Everything needed to query one ServiceNow instance.

    Attributes:
        enabled: Master switch. A disabled integration renders as empty
            panels, not as errors.
        instance_url: Base URL, e.g. "https://acme.service-now.com".
        username_var: Name of the secret holding the API user.
        password_var: Name of the secret holding the API password.
        outage_table: Table behind the outage and history panels.
        ticket_table: Table behind the tickets panel.
        change_table: Table behind the changes-today panel.
        field_mapping: Outage field paths.
        impact_level_mapping: Source impact value -> ImpactLevel value.
        ticket_field_mapping: Ticket field paths.
        change_field_mapping: Change request field paths.
        history_impact_values: Impact values the history query includes.
    """

    enabled: bool = False
    instance_url: str = ""
    username_var: str = "SERVICENOW_USERNAME"
    password_var: str = "SERVICENOW_PASSWORD"
    outage_table: str = "cmdb_ci_outage"
    ticket_table: str = "incident"
    change_table: str = "change_request"
    field_mapping: OutageFieldMapping = Field(default_factory=OutageFieldMapping)
    impact_level_mapping: list[ImpactMappingEntry] = Field(default_factory=_default_impact_mapping)
    ticket_field_mapping: TicketFieldMapping = Field(default_factory=TicketFieldMapping)
    change_field_mapping: ChangeFieldMapping = Field(default_factory=ChangeFieldMapping)
    history_impact_values: list[str] = Field(default_factory=lambda: ["outage", "degradation"])

    @property
    def base_url(self) -> str:
        return self.instance_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.instance_url.strip())


class MonitoringConfig(_ConfigModel):
    """Connection settings for the SolarWinds Information Service.

    Attributes:
        enabled: Master switch.
        api_url: Base URL of the SWIS REST endpoint (usually port 17774).
        username_var: Name of the secret holding the SWIS user.
        password_var: Name of the secret holding the SWIS password.
        tunnel_code_var: Secret sent as X-Tunnel-Code when set.
        access_client_id_var: Access-gateway service token id secret.
        access_client_secret_var: Access-gateway service token secret.
        ui_base: Web console base used to rewrite entity links. The
            SOLARWINDS_UI_BASE config key overrides it.
        exclude_captions: Entity captions to hide. Matched by equality or
            prefix, case-insensitively, and merged with the
            SOLARWINDS_EXCLUDE_CAPTIONS config key.
    """

    enabled: bool = False
    api_url: str = ""
    username_var: str = "SOLARWINDS_USERNAME"
    password_var: str = "SOLARWINDS_PASSWORD"
    tunnel_code_var: str = "SOLARWINDS_CUSTOM_HEADER"
    access_client_id_var: str = "CF_ACCESS_CLIENT_ID"
    access_client_secret_var: str = "CF_ACCESS_CLIENT_SECRET"
    ui_base: str = ""
    exclude_captions: list[str] = Field(default_factory=list)

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_url.strip())


class VendorProbe(_ConfigModel):
    """How to determine one vendor's health.

    MANUAL vendors are always Operational. API_JSON vendors are fetched
    from api_url; the value at json_path (dotted) is compared against the
    comma-separated expected_value list.
    """

    id: str
    name: str
    url: str
    status_type: Literal["MANUAL", "API_JSON"] = "MANUAL"
    api_url: str | None = None
    json_path: str | None = None
    expected_value: str | None = None

    @property
    def is_api_probe(self) -> bool:
        return (
            self.status_type == "API_JSON"
            and bool(self.api_url)
            and bool(self.json_path)
            and bool(self.expected_value)
        )
