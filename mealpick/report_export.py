from __future__ import annotations

import csv
import io
from typing import Any

from openpyxl import Workbook

ROW_FIELDS = ["id", "name", "department", "has_selected", "meal_name", "selection_time", "collected"]


def _cell(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, bool):
        return "yes" if v else "no"
    return v


def _worker_rows(payload: dict[str, Any]) -> list[list[Any]]:
    return [[_cell(r.get(f)) for f in ROW_FIELDS] for r in payload.get("rows", [])]


def _meal_rows(payload: dict[str, Any]) -> list[list[Any]]:
    return [[name, int(n)] for name, n in (payload.get("meal_counts") or {}).items()]


def _department_rows(payload: dict[str, Any]) -> list[list[Any]]:
    out = []
    for dep, s in (payload.get("department_stats") or {}).items():
        out.append([dep, int(s.get("total", 0)), int(s.get("selected", 0)), int(s.get("not_selected", 0))])
    return out


def _summary_rows(payload: dict[str, Any]) -> list[list[Any]]:
    stats = payload.get("stats", {})
    coll = payload.get("collection", {})
    return [
        ["date", payload.get("date", "")],
        ["total", int(stats.get("total", 0))],
        ["selected", int(stats.get("selected", 0))],
        ["not_selected", int(stats.get("not_selected", 0))],
        ["selection_rate", round(float(stats.get("selection_rate", 0)), 2)],
        ["collected", int(coll.get("collected", 0))],
        ["pending", int(coll.get("pending", 0))],
    ]


def build_csv(report_payload: dict[str, Any]) -> bytes:
    buf = io.StringIO(newline="")
    w = csv.writer(buf)
    w.writerow(["workers"])  # section marker
    w.writerow(ROW_FIELDS)
    w.writerows(_worker_rows(report_payload))
    w.writerow([])
    w.writerow(["meals"])  # section marker
    w.writerow(["meal_name", "count"])
    w.writerows(_meal_rows(report_payload))
    w.writerow([])
    w.writerow(["departments"])  # section marker
    w.writerow(["department", "total", "selected", "not_selected"])
    w.writerows(_department_rows(report_payload))
    w.writerow([])
    w.writerow(["summary"])  # section marker
    w.writerows(_summary_rows(report_payload))
    return buf.getvalue().encode("utf-8")


def build_xlsx(report_payload: dict[str, Any]) -> bytes:
    wb = Workbook()
    ws1 = wb.active
    ws1.title = "workers"
    ws1.append(ROW_FIELDS)
    for row in _worker_rows(report_payload):
        ws1.append(row)
    ws2 = wb.create_sheet("meals")
    ws2.append(["meal_name", "count"])
    for row in _meal_rows(report_payload):
        ws2.append(row)
    ws3 = wb.create_sheet("departments")
    ws3.append(["department", "total", "selected", "not_selected"])
    for row in _department_rows(report_payload):
        ws3.append(row)
    ws4 = wb.create_sheet("summary")
    for row in _summary_rows(report_payload):
        ws4.append(row)
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
