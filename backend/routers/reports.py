# backend/routers/reports.py
import io
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from auth import get_current_user
from services.fuel_statistics import get_fuel_statistics
from services.report_loaders import load_fueling_rows, load_report_sections
from services.report_builder import build_consolidated_pdf, export_csv, export_excel, summarize_fueling
from utils.dates import validate_range

router = APIRouter(prefix="/api/fuel/reports", tags=["Fuel Reports"])


def _require_range(start_date: Optional[date], end_date: Optional[date]):
    if start_date is None or end_date is None:
        raise HTTPException(status_code=400, detail="start_date and end_date are required")
    validate_range(start_date, end_date)


@router.get("/statistics", dependencies=[Depends(get_current_user)])
async def statistics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    airline_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    _require_range(start_date, end_date)
    return await get_fuel_statistics(db, start_date, end_date, airline_id)


# ---------------------------------------------------
# EXPORT (CSV / JSON / EXCEL)
# ---------------------------------------------------
@router.get("/export", dependencies=[Depends(get_current_user)])
async def export(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    format: str = Query("csv"),
    db: AsyncSession = Depends(get_db),
):
    _require_range(start_date, end_date)
    fmt = format.lower()
    if fmt not in ("csv", "json", "xlsx"):
        raise HTTPException(status_code=400, detail='format must be "csv", "json" or "xlsx"')

    rows = await load_fueling_rows(db, start_date, end_date)
    filename = f"fuel_operations_{start_date}_{end_date}"

    if fmt == "json":
        summary = summarize_fueling(rows)
        return {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "rows": rows,
            "totals": {
                "quantity_liters": summary["total_liters"],
                "quantity_kg": summary["total_kg"],
                "revenue_by_currency": summary["revenue_by_currency"],
                "operation_count": summary["operation_count"],
            },
        }

    if fmt == "csv":
        return StreamingResponse(
            io.BytesIO(export_csv(rows)),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
        )

    return StreamingResponse(
        io.BytesIO(export_excel(rows)),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
    )


# ---------------------------------------------------
# CONSOLIDATED PDF
# ---------------------------------------------------
@router.get("/consolidated/pdf", dependencies=[Depends(get_current_user)])
async def consolidated_pdf(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
):
    _require_range(start_date, end_date)

    sections, warnings = await load_report_sections(db, start_date, end_date)
    pdf = build_consolidated_pdf(start_date.isoformat(), end_date.isoformat(), sections)

    headers = {"Content-Disposition": f"attachment; filename=consolidated_report_{start_date}_{end_date}.pdf"}
    if warnings:
        headers["X-Report-Warnings"] = ",".join(warnings)

    return StreamingResponse(io.BytesIO(pdf), media_type="application/pdf", headers=headers)
