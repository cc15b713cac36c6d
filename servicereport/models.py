"""Domain records consumed by the service report renderer.

Records arrive as JSON-style dicts (camelCase keys, as stored by the
record store) and are turned into typed dataclasses here.  All records are
read-only inputs for the layout engine.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Result statuses
# ---------------------------------------------------------------------------

STATUS_OK = "OK"
STATUS_NOK = "NOK"
STATUS_NA = "NA"
STATUS_NR = "NR"
RESULT_STATUSES: tuple[str, ...] = (STATUS_OK, STATUS_NOK, STATUS_NA, STATUS_NR)

VIEW_MODE_LIST = "list"

_NUMERIC_SUFFIX_RE = re.compile(r"^\d+$")


def _str(value: object, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


def _str_list(value: object) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value if item]


def _status_or_none(value: object) -> str | None:
    # Status literals are matched exactly; "ok" is not OK.
    if value is None or value == "":
        return None
    return str(value)


def parse_timestamp(value: object) -> datetime | None:
    """Parse the timestamp shapes the record store can hand us.

    Accepts ``datetime``, ISO-8601 strings, epoch numbers (seconds, or
    milliseconds when the magnitude says so) and exported timestamp objects
    (``{"_seconds": ...}`` / ``{"seconds": ...}``).
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds"))
        return parse_timestamp(seconds) if seconds is not None else None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        seconds = value / 1000.0 if abs(value) > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=UTC)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def instance_id_matches_base(entry_instance_id: str, base_instance_id: str) -> bool:
    """Return True when an entry id is ``base`` or ``base_<digits>``."""
    if not base_instance_id:
        return False
    if entry_instance_id == base_instance_id:
        return True
    prefix = f"{base_instance_id}_"
    if entry_instance_id.startswith(prefix):
        return bool(_NUMERIC_SUFFIX_RE.match(entry_instance_id[len(prefix) :]))
    return False


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Activity:
    id: str
    name: str
    frequency: str = ""
    type: str = ""

    @property
    def frequency_code(self) -> str:
        """Final dotted segment of the frequency code (the displayed part)."""
        return self.frequency.split(".")[-1] if self.frequency else ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Activity:
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            frequency=_str(data.get("frequency")),
            type=_str(data.get("type")),
        )


@dataclass(slots=True)
class DeviceDefinition:
    id: str
    name: str
    activities: list[Activity] = field(default_factory=list)
    view_mode: str = ""

    @property
    def is_list_view(self) -> bool:
        return self.view_mode == VIEW_MODE_LIST

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceDefinition:
        raw_activities = data.get("activities") or []
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            activities=[Activity.from_dict(a) for a in raw_activities if isinstance(a, dict)],
            view_mode=_str(data.get("viewMode")),
        )


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class DeviceInstance:
    instance_id: str
    definition_id: str
    quantity: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceInstance:
        try:
            quantity = int(data.get("quantity") or 1)
        except (TypeError, ValueError):
            quantity = 1
        return cls(
            instance_id=_str(data.get("instanceId")),
            definition_id=_str(data.get("definitionId")),
            quantity=quantity,
        )


@dataclass(slots=True)
class Policy:
    id: str
    client_id: str
    devices: list[DeviceInstance] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Policy:
        return cls(
            id=_str(data.get("id")),
            client_id=_str(data.get("clientId")),
            devices=[
                DeviceInstance.from_dict(d)
                for d in data.get("devices") or []
                if isinstance(d, dict)
            ],
        )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ActivityData:
    photo_urls: list[str] = field(default_factory=list)
    observations: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityData:
        return cls(
            photo_urls=_str_list(data.get("photoUrls")),
            observations=_str(data.get("observations")),
        )


@dataclass(slots=True)
class ReportEntry:
    instance_id: str
    custom_id: str
    area: str = ""
    results: dict[str, str | None] = field(default_factory=dict)
    observations: str = ""
    photo_urls: list[str] = field(default_factory=list)
    activity_data: dict[str, ActivityData] = field(default_factory=dict)
    device_index: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportEntry:
        raw_results = data.get("results") or {}
        raw_activity_data = data.get("activityData") or {}
        try:
            device_index = int(data.get("deviceIndex") or 0)
        except (TypeError, ValueError):
            device_index = 0
        return cls(
            instance_id=_str(data.get("instanceId")),
            custom_id=_str(data.get("customId")),
            area=_str(data.get("area")),
            results={
                str(k): _status_or_none(v)
                for k, v in (raw_results.items() if isinstance(raw_results, dict) else [])
            },
            observations=_str(data.get("observations")),
            photo_urls=_str_list(data.get("photoUrls")),
            activity_data={
                str(k): ActivityData.from_dict(v)
                for k, v in (
                    raw_activity_data.items() if isinstance(raw_activity_data, dict) else []
                )
                if isinstance(v, dict)
            },
            device_index=device_index,
        )


@dataclass(slots=True)
class ServiceReport:
    id: str
    policy_id: str
    date_str: str
    service_date: datetime | None = None
    start_time: str | None = None
    end_time: str | None = None
    assigned_technician_ids: list[str] = field(default_factory=list)
    entries: list[ReportEntry] = field(default_factory=list)
    general_observations: str = ""
    provider_signature: str | None = None
    client_signature: str | None = None
    provider_signer_name: str | None = None
    client_signer_name: str | None = None
    section_assignments: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceReport:
        raw_assignments = data.get("sectionAssignments") or {}
        return cls(
            id=_str(data.get("id")),
            policy_id=_str(data.get("policyId")),
            date_str=_str(data.get("dateStr")),
            service_date=parse_timestamp(data.get("serviceDate")),
            start_time=data.get("startTime") or None,
            end_time=data.get("endTime") or None,
            assigned_technician_ids=_str_list(data.get("assignedTechnicianIds")),
            entries=[
                ReportEntry.from_dict(e) for e in data.get("entries") or [] if isinstance(e, dict)
            ],
            general_observations=_str(data.get("generalObservations")),
            provider_signature=data.get("providerSignature") or None,
            client_signature=data.get("clientSignature") or None,
            provider_signer_name=data.get("providerSignerName") or None,
            client_signer_name=data.get("clientSignerName") or None,
            section_assignments={
                str(k): _str_list(v)
                for k, v in (raw_assignments.items() if isinstance(raw_assignments, dict) else [])
            },
        )


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Client:
    id: str
    name: str
    legal_name: str = ""
    contact_name: str = ""
    contact: str = ""
    address: str = ""
    logo_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Client:
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            legal_name=_str(data.get("razonSocial") or data.get("legalName")),
            contact_name=_str(data.get("nombreContacto") or data.get("contactName")),
            contact=_str(data.get("contact")),
            address=_str(data.get("address")),
            logo_url=_str(data.get("logoUrl")),
        )


@dataclass(slots=True)
class Company:
    name: str
    legal_name: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    logo_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Company:
        return cls(
            name=_str(data.get("name")),
            legal_name=_str(data.get("legalName")),
            address=_str(data.get("address")),
            phone=_str(data.get("phone")),
            email=_str(data.get("email")),
            logo_url=_str(data.get("logoUrl")),
        )

    @classmethod
    def default(cls) -> Company:
        return cls(name="Mi Empresa")


@dataclass(slots=True)
class Technician:
    id: str
    name: str
    email: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Technician:
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            email=_str(data.get("email")),
        )


# ---------------------------------------------------------------------------
# Build inputs
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ReportInputs:
    """Everything one document build needs, fully resolved by the caller."""

    report: ServiceReport
    policy: Policy
    client: Client
    company: Company
    devices: list[DeviceDefinition] = field(default_factory=list)
    technicians: list[Technician] = field(default_factory=list)

    def definition(self, definition_id: str) -> DeviceDefinition | None:
        for device in self.devices:
            if device.id == definition_id:
                return device
        return None

    def technician_name(self, technician_id: str, fallback: str | None = None) -> str:
        for tech in self.technicians:
            if tech.id == technician_id:
                return tech.name
        return technician_id if fallback is None else fallback

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportInputs:
        """Build inputs from a JSON bundle.

        The bundle holds ``report``, ``policy`` and ``client`` objects plus optional
        ``company``, ``devices`` and ``technicians``.
        """
        for key in ("report", "policy", "client"):
            if not isinstance(data.get(key), dict):
                raise ValueError(f"Input bundle is missing the '{key}' object")
        company_raw = data.get("company")
        return cls(
            report=ServiceReport.from_dict(data["report"]),
            policy=Policy.from_dict(data["policy"]),
            client=Client.from_dict(data["client"]),
            company=(
                Company.from_dict(company_raw)
                if isinstance(company_raw, dict)
                else Company.default()
            ),
            devices=[
                DeviceDefinition.from_dict(d)
                for d in data.get("devices") or []
                if isinstance(d, dict)
            ],
            technicians=[
                Technician.from_dict(t)
                for t in data.get("technicians") or []
                if isinstance(t, dict)
            ],
        )
