"""Export endpoints (Excel download)."""

import io
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud
from ..deps import to_http_error

router = APIRouter(prefix="/api/export", tags=["export"])


@router.get("/compliance-report.xlsx")
def export_compliance_report_excel(
    report_type: str = Query("executive_summary"),
    portfolio_id: Optional[int] = Query(None),
    project_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        report = crud.compliance_report(
            db, report_type=report_type, portfolio_id=portfolio_id, project_id=project_id
        )
    except ValueError as e:
        raise to_http_error(e)

    import openpyxl
    wb = openpyxl.Workbook()
    summary = report["executive_summary"]
    breakdown = report["detailed_breakdown"]

    # Summary sheet
    ws = wb.active
    ws.title = "Summary"
    ws.append(["Report Type", report["report_type"]])
    ws.append(["Generated At", report["generated_at"].isoformat(timespec="seconds")])
    ws.append(["Portfolio ID", report["scope"]["portfolio_id"]])
    ws.append(["Project ID", report["scope"]["project_id"]])
    ws.append(["Overall Compliance (%)", summary["overall_compliance"]])
    ws.append(["Total Projects", summary["total_projects"]])
    ws.append(["Evaluated Projects", summary["evaluated_projects"]])
    ws.append(["Compliant Projects", summary["compliant_projects"]])
    ws.append(["Non-Compliant Projects", summary["non_compliant_projects"]])
    ws.append(["Active Standards", summary["standards_coverage"]])
    ws.append([])
    ws.append(["Finding", "Value", "Status"])
    for finding in summary["key_findings"]:
        ws.append([finding["title"], finding["value"], finding["status"]])

    # Per-project sheet
    ws2 = wb.create_sheet("Projects")
    ws2.append(["Project ID", "Project", "Score", "Status", "Last Evaluation", "Evaluator"])
    for row in breakdown["project_compliance"]:
        ws2.append([
            row["project_id"], row["project_name"], row["compliance_score"], row["status"],
            row["last_evaluation"].isoformat(timespec="seconds"), row["evaluator"],
        ])

    # Standards sheet
    ws3 = wb.create_sheet("Standards")
    ws3.append(["Standard ID", "Standard", "Category", "Compliance Rate (%)", "Evaluations"])
    for row in breakdown["standards_adherence"]:
        ws3.append([
            row["standard_id"], row["standard_name"], row["category"],
            row["compliance_rate"], row["total_evaluations"],
        ])

    # Portfolios sheet
    ws4 = wb.create_sheet("Portfolios")
    ws4.append(["Portfolio ID", "Portfolio", "Score", "Projects", "Evaluations"])
    for row in breakdown["portfolio_breakdown"]:
        ws4.append([
            row["portfolio_id"], row["portfolio_name"], row["compliance_score"],
            row["total_projects"], row["evaluated_projects"],
        ])

    # Evidence sheet
    evidence = breakdown["evidence_statistics"]
    ws5 = wb.create_sheet("Evidence")
    ws5.append(["Total", "Approved", "Pending Review", "Rejected"])
    ws5.append([
        evidence["total_evidence"], evidence["approved_evidence"],
        evidence["pending_review"], evidence["rejected_evidence"],
    ])

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)

    filename = f"compliance_report_{report['report_type']}.xlsx"
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
