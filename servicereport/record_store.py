"""File-backed record store.

Records are JSON documents laid out as ``<data_dir>/<collection>/<id>.json``;
the document id is the file stem.  The company profile lives at
``<data_dir>/settings/company_profile.json``.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from .errors import INVALID_ARGUMENT, NOT_FOUND, ReportInputError
from .models import (
    Client,
    Company,
    DeviceDefinition,
    Policy,
    ReportInputs,
    ServiceReport,
    Technician,
)

LOGGER = logging.getLogger(__name__)

REPORTS = "reports"
POLICIES = "policies"
CLIENTS = "clients"
DEVICES = "devices"
USERS = "users"
SETTINGS = "settings"
COMPANY_PROFILE_ID = "company_profile"

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def _is_safe_id(doc_id: str) -> bool:
    return bool(_SAFE_ID_RE.match(doc_id)) and doc_id not in {".", ".."}


def _check_id(doc_id: str) -> str:
    if not _is_safe_id(doc_id):
        raise ReportInputError(INVALID_ARGUMENT, f"Invalid document id: {doc_id!r}")
    return doc_id


class JsonRecordStore:
    """Read-only access to the report, policy, client, device and user records."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # -- raw documents ---------------------------------------------------------

    def _read_doc(self, path: Path) -> dict[str, Any] | None:
        if not path.is_file():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            LOGGER.warning("Could not read record %s: %s", path, exc)
            return None
        if not isinstance(raw, dict):
            LOGGER.warning("Record %s is not a JSON object; ignored", path)
            return None
        return {**raw, "id": path.stem}

    def get_doc(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        return self._read_doc(self._data_dir / collection / f"{_check_id(doc_id)}.json")

    def list_docs(self, collection: str) -> list[dict[str, Any]]:
        folder = self._data_dir / collection
        if not folder.is_dir():
            return []
        docs: list[dict[str, Any]] = []
        for path in sorted(folder.glob("*.json")):
            doc = self._read_doc(path)
            if doc is not None:
                docs.append(doc)
        return docs

    # -- typed lookups ---------------------------------------------------------

    def find_report(
        self,
        *,
        report_id: str | None = None,
        policy_id: str | None = None,
        date_str: str | None = None,
    ) -> ServiceReport:
        if report_id:
            doc = self.get_doc(REPORTS, report_id)
            if doc is None:
                raise ReportInputError(NOT_FOUND, "Report not found.")
            return ServiceReport.from_dict(doc)
        if policy_id and date_str:
            for doc in self.list_docs(REPORTS):
                if doc.get("policyId") == policy_id and doc.get("dateStr") == date_str:
                    return ServiceReport.from_dict(doc)
            raise ReportInputError(NOT_FOUND, "No report exists for that period.")
        raise ReportInputError(INVALID_ARGUMENT, "Provide reportId or (policyId + dateStr).")

    def get_policy(self, policy_id: str) -> Policy:
        doc = self.get_doc(POLICIES, policy_id) if policy_id else None
        if doc is None:
            raise ReportInputError(NOT_FOUND, "Policy not found.")
        return Policy.from_dict(doc)

    def get_client(self, client_id: str) -> Client:
        doc = self.get_doc(CLIENTS, client_id) if client_id else None
        if doc is None:
            raise ReportInputError(NOT_FOUND, "Client not found.")
        return Client.from_dict(doc)

    def get_company(self) -> Company:
        doc = self.get_doc(SETTINGS, COMPANY_PROFILE_ID)
        return Company.from_dict(doc) if doc is not None else Company.default()

    def list_devices(self) -> list[DeviceDefinition]:
        return [DeviceDefinition.from_dict(doc) for doc in self.list_docs(DEVICES)]

    def get_technicians(self, technician_ids: list[str]) -> list[Technician]:
        technicians: list[Technician] = []
        for tech_id in dict.fromkeys(technician_ids):
            if not _is_safe_id(tech_id):
                LOGGER.warning("Skipping malformed technician id %r", tech_id)
                continue
            doc = self.get_doc(USERS, tech_id)
            if doc is not None:
                technicians.append(Technician.from_dict(doc))
        return technicians

    def load_inputs(
        self,
        *,
        report_id: str | None = None,
        policy_id: str | None = None,
        date_str: str | None = None,
    ) -> ReportInputs:
        """Resolve everything one report build needs.

        Raises :class:`ReportInputError` when the report, its policy or the
        policy's client cannot be found.
        """
        report = self.find_report(report_id=report_id, policy_id=policy_id, date_str=date_str)
        policy = self.get_policy(report.policy_id)
        client = self.get_client(policy.client_id)
        technician_ids = list(report.assigned_technician_ids)
        for ids in report.section_assignments.values():
            technician_ids.extend(ids)
        return ReportInputs(
            report=report,
            policy=policy,
            client=client,
            company=self.get_company(),
            devices=self.list_devices(),
            technicians=self.get_technicians(technician_ids),
        )
