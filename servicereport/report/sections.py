"""Device sections: grouping entries per device definition and dispatching
each section to the grid or list layout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from reportlab.pdfbase.pdfmetrics import stringWidth

from ..models import (
    Activity,
    DeviceDefinition,
    DeviceInstance,
    ReportEntry,
    ReportInputs,
    instance_id_matches_base,
)
from ..report_theme import REPORT_COLORS
from .grid_layout import GridTableLayout
from .list_layout import ItemizedListLayout
from .primitives import FONT, FONT_B, draw_box, draw_single_line
from .session import LayoutSession

LOGGER = logging.getLogger(__name__)

SECTION_HEADER_HEIGHT = 16.0
SECTION_HEADER_ROOM = 30.0
SECTION_GAP = 8.0
RESPONSIBLES_W = 145.0


@dataclass(slots=True)
class DeviceSection:
    definition: DeviceDefinition
    entries: list[ReportEntry] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)

    @property
    def definition_id(self) -> str:
        return self.definition.id


class SectionLayout(Protocol):
    def render(self, session: LayoutSession, section: DeviceSection) -> None: ...


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def find_instance(entry: ReportEntry, instances: list[DeviceInstance]) -> DeviceInstance | None:
    for instance in instances:
        if instance_id_matches_base(entry.instance_id, instance.instance_id):
            return instance
    return None


def group_entries_by_definition(
    entries: list[ReportEntry], instances: list[DeviceInstance]
) -> dict[str, list[ReportEntry]]:
    """Definition id -> entries, in first-seen order.

    An entry belongs to the first policy instance whose id equals the
    entry's instance id or is its ``<base>_<digits>`` base.  Entries with
    no such instance are dropped.
    """
    grouped: dict[str, list[ReportEntry]] = {}
    for entry in entries:
        instance = find_instance(entry, instances)
        if instance is None:
            LOGGER.warning("Entry %s has no matching policy device; skipped", entry.instance_id)
            continue
        grouped.setdefault(instance.definition_id, []).append(entry)
    return grouped


def relevant_activities(definition: DeviceDefinition, entries: list[ReportEntry]) -> list[Activity]:
    """Definition activities that have a result key in at least one entry."""
    scheduled = {activity_id for entry in entries for activity_id in entry.results}
    return [activity for activity in definition.activities if activity.id in scheduled]


def plan_sections(inputs: ReportInputs) -> list[DeviceSection]:
    sections: list[DeviceSection] = []
    grouped = group_entries_by_definition(inputs.report.entries, inputs.policy.devices)
    for definition_id, entries in grouped.items():
        definition = inputs.definition(definition_id)
        if definition is None:
            LOGGER.warning(
                "Device definition %s is not in the catalog; %d entries skipped",
                definition_id,
                len(entries),
            )
            continue
        activities = relevant_activities(definition, entries)
        if not activities:
            continue
        sections.append(
            DeviceSection(definition=definition, entries=entries, activities=activities)
        )
    return sections


def section_technician_names(inputs: ReportInputs, definition_id: str) -> str:
    tech_ids = inputs.report.section_assignments.get(definition_id) or []
    return ", ".join(inputs.technician_name(tech_id) for tech_id in tech_ids)


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------


def draw_section_header(session: LayoutSession, section: DeviceSection) -> None:
    session.ensure_room(SECTION_HEADER_HEIGHT + SECTION_HEADER_ROOM)
    c = session.canvas
    x, y, w = session.left, session.y, session.width
    draw_box(
        c,
        x,
        y - SECTION_HEADER_HEIGHT,
        w,
        SECTION_HEADER_HEIGHT,
        fill=REPORT_COLORS["section_bg"],
        stroke=REPORT_COLORS["black"],
    )

    name = section.definition.name.upper()
    name_w = stringWidth(name, FONT_B, 7)
    draw_single_line(
        c, x + 5, y - 4, w - 160, name, font=FONT_B, size=7, color=REPORT_COLORS["white"]
    )
    count_x = x + 5 + name_w + 2
    draw_single_line(
        c,
        count_x,
        y - 4,
        max(w - 160 - (count_x - x), 20),
        "  " + session.tr("UNITS_SUFFIX", count=len(section.entries)),
        font=FONT,
        size=6,
        color=REPORT_COLORS["border"],
    )

    names = section_technician_names(session.inputs, section.definition_id)
    draw_single_line(
        c,
        x + w - RESPONSIBLES_W - 5,
        y - 5,
        RESPONSIBLES_W,
        session.tr("SECTION_RESPONSIBLES", names=names or session.tr("GENERAL_ASSIGNMENT")),
        size=5,
        color=REPORT_COLORS["white"],
        align="right",
    )
    session.advance(SECTION_HEADER_HEIGHT)


def layout_for(definition: DeviceDefinition) -> SectionLayout:
    return ItemizedListLayout() if definition.is_list_view else GridTableLayout()


def render_device_sections(session: LayoutSession) -> list[DeviceSection]:
    """Draw every non-empty device section; return the sections drawn."""
    sections = plan_sections(session.inputs)
    for section in sections:
        draw_section_header(session, section)
        layout_for(section.definition).render(session, section)
        session.advance(SECTION_GAP)
    return sections
