"""
Credit score endpoints and credit report upload
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from andy_ai.ai.assistant import FinancialAssistant, get_assistant
from andy_ai.auth.session_auth import get_current_user
from andy_ai.config import settings
from andy_ai.database import get_db
from andy_ai.exceptions import AppException
from andy_ai.models import CreditReport, User
from andy_ai.services.credit import find_score_in_text, report_to_dict
from andy_ai.services.document_extraction import extract_text
from andy_ai.services.uploads import cleanup_files, init_upload_dir, save_upload, validate_upload

logger = logging.getLogger(__name__)

credit_router = APIRouter(prefix="/api/credit", tags=["credit"])


def _latest_report(db: Session, user_id: int) -> Optional[CreditReport]:
    return db.query(CreditReport)\
        .filter(CreditReport.user_id == user_id)\
        .order_by(CreditReport.report_date.desc(), CreditReport.id.desc())\
        .first()


@credit_router.get("/score")
def credit_score(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Latest credit score for the logged in user"""
    return report_to_dict(_latest_report(db, user.id))


@credit_router.get("/reports")
def credit_reports(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    reports = db.query(CreditReport)\
        .filter(CreditReport.user_id == user.id)\
        .order_by(CreditReport.report_date.desc(), CreditReport.id.desc())\
        .all()
    return [report_to_dict(r) for r in reports]


def _parse_report_date(value: Optional[str]) -> datetime:
    if not value:
        return datetime.utcnow()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise AppException(400, f"Invalid report date: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@credit_router.post("/upload-report")
async def upload_report(
    report: UploadFile = File(...),
    bureau: str = Form("manual"),
    date: Optional[str] = Form(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    assistant: FinancialAssistant = Depends(get_assistant)
):
    """Extract a credit report, let the assistant read it and store the score"""
    allowed = {
        mime: exts for mime, exts in settings.ALLOWED_UPLOAD_TYPES.items()
        if mime in settings.CREDIT_REPORT_TYPES
    }
    stored = None
    try:
        report_date = _parse_report_date(date)
        validate_upload(report.filename, report.content_type, allowed)
        stored = await save_upload(report, init_upload_dir())

        document = await run_in_threadpool(extract_text, stored.path, stored.mime_type, stored.name)
        analysis = await run_in_threadpool(assistant.analyze_credit_report, document.text)

        score = analysis.get("score") or find_score_in_text(document.text)
        if score is None:
            raise AppException(422, "Could not find a credit score in the report")

        credit_report = CreditReport(
            user_id=user.id,
            score=score,
            bureau=bureau or "manual",
            report_date=report_date,
            factors=json.dumps(analysis.get("factors", [])),
            report_data=document.text
        )
        db.add(credit_report)
        db.commit()
        db.refresh(credit_report)
        logger.info(f"Stored credit report {credit_report.id} for user {user.id} (score {score})")

        result = report_to_dict(credit_report)
        result["analysis"] = analysis
        return result

    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Credit report upload failed: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Error processing credit report")
    finally:
        # The report text lives in the database, the raw file is not kept
        if stored is not None:
            cleanup_files([stored.path])
