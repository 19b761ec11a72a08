import io
from typing import List, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from app.core.constants import ExportFormatEnum
from app.schemas.attempt import AttemptSummary
from app.schemas.user import UserContext
from app.services.attempt import attempt_service

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _fmt_score(value) -> str:
    # Display only; stored scores are never rounded
    return "" if value is None else f"{value:.2f}"


class ReportService:

    def summaries_frame(self, summaries: List[AttemptSummary]) -> pd.DataFrame:
        field_keys = sorted({k for s in summaries for k in s.fields})
        rows = []
        for s in summaries:
            participant = s.participant
            row = {
                "attempt_id": s.attempt_id,
                "participant": participant.name if participant.kind == "guest" else f"user:{participant.user_id}",
                "status": s.status,
                "started_at": s.started_at.isoformat(),
                "finished_at": (s.submitted_at or s.expired_at or s.cancelled_at).isoformat()
                if (s.submitted_at or s.expired_at or s.cancelled_at) else "",
                "duration_sec": s.duration_sec,
                "answered": f"{s.cursor}/{s.total}",
                "score": _fmt_score(s.score),
                "max_score": _fmt_score(s.max_score),
                "pending": s.pending_score,
            }
            for key in field_keys:
                row[f"field:{key}"] = s.fields.get(key, "")
            rows.append(row)
        columns = [
            "attempt_id", "participant", "status", "started_at", "finished_at",
            "duration_sec", "answered", "score", "max_score", "pending",
        ] + [f"field:{k}" for k in field_keys]
        return pd.DataFrame(rows, columns=columns)

    def export_attempt_summaries(self, db: Session, *, assignment_id: str, export_format: ExportFormatEnum,
                                 current_user_context: UserContext) -> Tuple[bytes, str, str]:
        """Render the owner's attempt listing as a file. Returns (content, media type, filename)."""
        summaries = attempt_service.list_attempt_summaries(
            db, assignment_id=assignment_id, current_user_context=current_user_context
        )
        df = self.summaries_frame(summaries)

        if ExportFormatEnum(export_format) == ExportFormatEnum.XLSX:
            buffer = io.BytesIO()
            df.to_excel(buffer, index=False, sheet_name="attempts")
            return buffer.getvalue(), XLSX_MEDIA_TYPE, f"attempts-{assignment_id}.xlsx"

        return df.to_csv(index=False).encode("utf-8"), CSV_MEDIA_TYPE, f"attempts-{assignment_id}.csv"


report_service = ReportService()
