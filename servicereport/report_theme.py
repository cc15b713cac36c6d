from __future__ import annotations

# Print-friendly greyscale palette with green/red status accents.
REPORT_COLORS = {
    "black": "#000000",
    "white": "#ffffff",
    "zebra_bg": "#fafafa",
    "band_bg": "#f5f5f5",
    "header_bg": "#eeeeee",
    "row_border": "#e0e0e0",
    "border": "#bdbdbd",
    "text_muted": "#757575",
    "text_secondary": "#616161",
    "section_bg": "#424242",
    "success": "#4caf50",
    "danger": "#f44336",
}

STATUS_COLORS = {
    "OK": REPORT_COLORS["success"],
    "NOK": REPORT_COLORS["danger"],
}
