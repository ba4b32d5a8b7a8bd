# services/report_builder.py
import io
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, PageBreak
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib import colors

from constants.fuel import CURRENCIES, TX_SUPPLIER_REFILL, TX_FIXED_TANK_TRANSFER, TX_AIRCRAFT_FUELING, TX_DRAIN
from services.report_loaders import SECTION_FUELING, SECTION_INTAKE, SECTION_TANKER, SECTION_DRAINS

TX_LABELS = {
    TX_SUPPLIER_REFILL: "SUPPLIER REFILL",
    TX_FIXED_TANK_TRANSFER: "FIXED TANK TRANSFER",
    TX_AIRCRAFT_FUELING: "AIRCRAFT FUELING",
    TX_DRAIN: "DRAIN",
}

TX_COLORS = {
    TX_SUPPLIER_REFILL: colors.HexColor("#27ae60"),
    TX_FIXED_TANK_TRANSFER: colors.HexColor("#2980b9"),
    TX_AIRCRAFT_FUELING: colors.HexColor("#e74c3c"),
}


# =======================================================
# SUMMARIES
# =======================================================

def summarize_fueling(rows: List[dict]) -> dict:
    total_liters = sum(r["quantity_liters"] or 0 for r in rows)
    total_kg = sum(r["quantity_kg"] or 0 for r in rows)

    revenue = OrderedDict((c, 0.0) for c in CURRENCIES)
    by_traffic: Dict[str, dict] = {}

    for r in rows:
        if r.get("currency") and r.get("total_amount") is not None:
            revenue[r["currency"]] = revenue.get(r["currency"], 0.0) + r["total_amount"]
        key = r.get("traffic_type") or "UNSPECIFIED"
        entry = by_traffic.setdefault(key, {"liters": 0.0, "kg": 0.0})
        entry["liters"] += r["quantity_liters"] or 0
        entry["kg"] += r["quantity_kg"] or 0

    return {
        "total_liters": round(total_liters, 2),
        "total_kg": round(total_kg, 2),
        "average_density": round(total_kg / total_liters, 3) if total_liters > 0 else 0.0,
        "revenue_by_currency": {c: round(v, 2) for c, v in revenue.items()},
        "by_traffic_type": {
            k: {"liters": round(v["liters"], 2), "kg": round(v["kg"], 2)}
            for k, v in sorted(by_traffic.items())
        },
        "operation_count": len(rows),
    }


def total_liters(rows: List[dict]) -> float:
    return round(sum(r["quantity_liters"] or 0 for r in rows), 2)


# =======================================================
# PDF HELPERS
# =======================================================

def _fmt_dt(value) -> str:
    return value.strftime("%d.%m.%Y %H:%M") if isinstance(value, datetime) else str(value or "-")


def _fmt_num(value, decimals: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:,.{decimals}f}"


def _grid(data, col_widths=None, extra=None):
    table = Table(data, repeatRows=1, colWidths=col_widths)
    style = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("GRID", (0, 0), (-1, -1), 0.4, colors.grey),
        ("FONTSIZE", (0, 0), (-1, -1), 7),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    table.setStyle(TableStyle(style + (extra or [])))
    return table


def _unavailable(story, styles, title):
    story.append(Paragraph(f"<b>{title}</b>", styles["Heading2"]))
    story.append(Paragraph("Section unavailable: data could not be loaded.", styles["Italic"]))


# =======================================================
# CONSOLIDATED PDF
# =======================================================

def build_consolidated_pdf(
    start_date: str,
    end_date: str,
    sections: Dict[str, Optional[List[dict]]],
) -> bytes:
    """
    sections: rows per section name, None for a section that failed to load.
    Returns: bytes of PDF (four sections, each on its own page)
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=landscape(A4),
        rightMargin=20, leftMargin=20, topMargin=30, bottomMargin=30,
        title="Consolidated Fuel Report",
    )
    styles = getSampleStyleSheet()
    story = []

    story.append(Paragraph("<b>CONSOLIDATED FUEL REPORT</b>", styles["Title"]))
    story.append(Paragraph(f"Period: {start_date} - {end_date}", styles["Normal"]))
    story.append(Paragraph(f"Generated: {_fmt_dt(datetime.now())}", styles["Normal"]))
    story.append(Spacer(1, 12))

    # ---------------- 1. fueling operations ----------------
    title = "1. FUELING OPERATIONS"
    rows = sections.get(SECTION_FUELING)
    if rows is None:
        _unavailable(story, styles, title)
    else:
        story.append(Paragraph(f"<b>{title}</b>", styles["Heading2"]))
        if not rows:
            story.append(Paragraph("No fueling operations for the selected period.", styles["Normal"]))
        else:
            data = [[
                "Date/Time", "Aircraft", "Airline", "Destination", "Qty (L)", "Density",
                "Qty (kg)", "Price/kg", "Currency", "Total", "Tank", "Flight", "Operator", "Traffic",
            ]]
            for r in rows:
                data.append([
                    _fmt_dt(r["date_time"]), r["aircraft_registration"], r["airline"], r["destination"],
                    _fmt_num(r["quantity_liters"]), _fmt_num(r["specific_density"], 3),
                    _fmt_num(r["quantity_kg"]), _fmt_num(r["price_per_kg"], 4), r["currency"] or "-",
                    _fmt_num(r["total_amount"]), r["tank"], r["flight_number"] or "-",
                    r["operator_name"], r["traffic_type"] or "-",
                ])
            story.append(_grid(data, extra=[("ALIGN", (4, 1), (9, -1), "RIGHT")]))

        summary = summarize_fueling(rows)
        story.append(Spacer(1, 12))
        story.append(Paragraph("<b>Summary</b>", styles["Heading3"]))
        story.append(Paragraph(f"Total liters: {_fmt_num(summary['total_liters'])} L", styles["Normal"]))
        story.append(Paragraph(f"Total kilograms: {_fmt_num(summary['total_kg'])} kg", styles["Normal"]))
        story.append(Paragraph(f"Average density: {_fmt_num(summary['average_density'], 3)} kg/L", styles["Normal"]))
        story.append(Spacer(1, 6))
        story.append(Paragraph("Revenue by currency:", styles["Normal"]))
        for currency, amount in summary["revenue_by_currency"].items():
            story.append(Paragraph(f"{currency}: {_fmt_num(amount)}", styles["Normal"]))
        story.append(Spacer(1, 6))
        story.append(Paragraph("Totals by traffic type:", styles["Normal"]))
        if summary["by_traffic_type"]:
            for traffic, v in summary["by_traffic_type"].items():
                story.append(Paragraph(
                    f"{traffic}: {_fmt_num(v['liters'])} L / {_fmt_num(v['kg'])} kg", styles["Normal"]
                ))
        else:
            story.append(Paragraph("No traffic type data", styles["Normal"]))

    story.append(PageBreak())

    # ---------------- 2. intake ----------------
    title = "2. FUEL INTAKE"
    rows = sections.get(SECTION_INTAKE)
    if rows is None:
        _unavailable(story, styles, title)
    else:
        story.append(Paragraph(f"<b>{title}</b>", styles["Heading2"]))
        if not rows:
            story.append(Paragraph("No fuel intake for the selected period.", styles["Normal"]))
        else:
            data = [["Date/Time", "Fuel type", "Category", "Quantity (L)", "Supplier", "Delivery note", "MRN"]]
            for r in rows:
                data.append([
                    _fmt_dt(r["delivery_datetime"]), r["fuel_type"], r["fuel_category"] or "-",
                    _fmt_num(r["quantity_liters"]), r["supplier_name"] or "-",
                    r["delivery_note_number"] or "-", r["customs_declaration_number"],
                ])
            story.append(_grid(data, extra=[("ALIGN", (3, 1), (3, -1), "RIGHT")]))
        story.append(Spacer(1, 8))
        story.append(Paragraph(f"<b>Total received: {_fmt_num(total_liters(rows))} L</b>", styles["Normal"]))

    story.append(PageBreak())

    # ---------------- 3. tanker transactions ----------------
    title = "3. TANKER TRANSACTIONS"
    rows = sections.get(SECTION_TANKER)
    if rows is None:
        _unavailable(story, styles, title)
    else:
        story.append(Paragraph(f"<b>{title}</b>", styles["Heading2"]))
        if not rows:
            story.append(Paragraph("No tanker transactions for the selected period.", styles["Normal"]))
        else:
            data = [["Date/Time", "Tanker", "Transaction type", "Quantity (L)", "Notes"]]
            extra = [("ALIGN", (3, 1), (3, -1), "RIGHT")]
            for i, r in enumerate(rows, start=1):
                data.append([
                    _fmt_dt(r["datetime"]), r["tanker"], TX_LABELS.get(r["type"], r["type"].upper()),
                    _fmt_num(r["quantity_liters"]), r["notes"] or "-",
                ])
                color = TX_COLORS.get(r["type"])
                if color is not None:
                    extra.append(("BACKGROUND", (2, i), (2, i), color))
                    extra.append(("TEXTCOLOR", (2, i), (2, i), colors.white))
            story.append(_grid(data, extra=extra))

    story.append(PageBreak())

    # ---------------- 4. drains ----------------
    title = "4. DRAINED FUEL"
    rows = sections.get(SECTION_DRAINS)
    if rows is None:
        _unavailable(story, styles, title)
    else:
        story.append(Paragraph(f"<b>{title}</b>", styles["Heading2"]))
        if not rows:
            story.append(Paragraph("No drained fuel for the selected period.", styles["Normal"]))
        else:
            data = [["Date/Time", "Source type", "Source", "Quantity (L)", "Notes", "User"]]
            for r in rows:
                data.append([
                    _fmt_dt(r["date_time"]), r["source_type"], r["source"],
                    _fmt_num(r["quantity_liters"]), r["notes"] or "-", r["user"] or "-",
                ])
            story.append(_grid(data, extra=[("ALIGN", (3, 1), (3, -1), "RIGHT")]))
        story.append(Spacer(1, 8))
        story.append(Paragraph(f"<b>Total drained: {_fmt_num(total_liters(rows))} L</b>", styles["Normal"]))

    doc.build(story)
    pdf = buffer.getvalue()
    buffer.close()
    return pdf


# =======================================================
# FUELING EXPORT (CSV / EXCEL)
# =======================================================

EXPORT_COLUMNS = [
    "id", "date_time", "aircraft_registration", "airline", "destination", "flight_number",
    "quantity_liters", "specific_density", "quantity_kg", "price_per_kg", "currency",
    "total_amount", "tank", "operator_name", "traffic_type",
]


def fueling_dataframe(rows: List[dict]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_csv(rows: List[dict]) -> bytes:
    return fueling_dataframe(rows).to_csv(index=False).encode("utf-8")


def export_excel(rows: List[dict]) -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        fueling_dataframe(rows).to_excel(writer, index=False, sheet_name="Fueling Operations")
    return output.getvalue()
