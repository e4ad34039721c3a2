# gaming_desk/infrastructure/excel_export.py
from __future__ import annotations

import io
import logging
import os
import tempfile
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple
from zoneinfo import ZoneInfo

import pandas as pd

from gaming_desk.domain.entities import SessionRecord
from gaming_desk.domain.errors import ExportError

log = logging.getLogger("infra.excel_export")

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

COLUMNS = [
    "Customer Name",
    "Phone Number",
    "Age",
    "Payment Mode",
    "Number of People",
    "Duration (Hours)",
    "Snacks",
    "Total Amount",
    "Date",
    "Time",
    "Status",
]


def session_rows(sessions: Sequence[SessionRecord], tz: ZoneInfo) -> List[Dict[str, Any]]:
    rows = []
    for s in sessions:
        local = s.started_at.astimezone(tz)
        rows.append({
            "Customer Name": s.customer_name,
            "Phone Number": s.phone_number,
            "Age": s.age_years if s.age_years else "-",
            "Payment Mode": "online" if s.payment_method.value == "online" else "cash",
            "Number of People": s.party_size,
            "Duration (Hours)": s.duration_hours,
            "Snacks": s.snack_description(),
            "Total Amount": s.subtotal,
            "Date": local.strftime("%d/%m/%Y"),
            "Time": local.strftime("%I:%M:%S %p"),
            "Status": "Renewed" if s.renewed else "New",
        })
    return rows


def _frame(sessions: Sequence[SessionRecord], tz: ZoneInfo) -> pd.DataFrame:
    return pd.DataFrame(session_rows(sessions, tz), columns=COLUMNS)


class ExcelExporter:
    def __init__(self, out_dir: str, tz: ZoneInfo) -> None:
        self.out_dir = out_dir
        self.tz = tz

    def _free_path(self, stem: str) -> str:
        path = os.path.join(self.out_dir, f"{stem}.xlsx")
        n = 1
        while os.path.exists(path):
            path = os.path.join(self.out_dir, f"{stem}_{n}.xlsx")
            n += 1
        return path

    def export_archive(self, sessions: Sequence[SessionRecord], now: datetime) -> str:
        """
        Write archive_<date>.xlsx and fsync it before returning its file name.
        Deleting the archived records is only safe after this returns.
        """
        try:
            os.makedirs(self.out_dir, exist_ok=True)
            path = self._free_path(f"archive_{now.astimezone(self.tz).date().isoformat()}")
            fd, tmp = tempfile.mkstemp(suffix=".xlsx", dir=self.out_dir)
            try:
                with os.fdopen(fd, "wb") as fh:
                    with pd.ExcelWriter(fh, engine="openpyxl") as writer:
                        _frame(sessions, self.tz).to_excel(writer, sheet_name="Archive", index=False)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.remove(tmp)
                raise
        except Exception as e:
            raise ExportError(f"Could not write archive spreadsheet: {e}") from e
        log.info("Archived %d sessions to %s", len(sessions), path)
        return os.path.basename(path)

    def export_sessions(self, sessions: Sequence[SessionRecord], now: datetime) -> Tuple[str, bytes]:
        """Download for the sessions table: (file name, xlsx bytes)."""
        try:
            buf = io.BytesIO()
            with pd.ExcelWriter(buf, engine="openpyxl") as writer:
                _frame(sessions, self.tz).to_excel(writer, sheet_name="Sessions", index=False)
        except Exception as e:
            raise ExportError(f"Could not generate Excel file: {e}") from e
        name = f"SB_Gaming_Sessions_{now.astimezone(self.tz).date().isoformat()}.xlsx"
        return name, buf.getvalue()
