"""
Chat endpoints: free-form conversation with Andy and document upload analysis
"""

from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from andy_ai.ai.assistant import FinancialAssistant, get_assistant
from andy_ai.auth.session_auth import get_current_user, get_optional_user
from andy_ai.config import settings
from andy_ai.database import get_db
from andy_ai.exceptions import AppException
from andy_ai.models import UploadedDocument, User
from andy_ai.schemas import ChatRequest
from andy_ai.services.document_extraction import extract_text
from andy_ai.services.uploads import (
    cleanup_files, init_upload_dir, save_upload, validate_upload
)

logger = logging.getLogger(__name__)

chat_router = APIRouter(prefix="/api/chat", tags=["chat"])


@chat_router.post("")
def chat(
    body: ChatRequest,
    user: Optional[User] = Depends(get_optional_user),
    assistant: FinancialAssistant = Depends(get_assistant)
):
    """Reply to a chat message as Andy"""
    try:
        user_name = user.first_name if user else None
        history = [m.model_dump() for m in body.history]
        response = assistant.chat(body.message, user_name=user_name, history=history)
        return {"response": response}
    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Chat error: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Oops! I had a little short circuit. Could you try again?"
        )


def _extract_all(stored):
    return [extract_text(s.path, s.mime_type, s.name) for s in stored]


@chat_router.post("/upload")
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    assistant: FinancialAssistant = Depends(get_assistant)
):
    """Save uploaded documents, extract their text and analyze it"""
    stored = []
    try:
        if not files:
            raise AppException(400, "No files uploaded")
        if len(files) > settings.MAX_UPLOAD_FILES:
            raise AppException(
                400, f"Too many files. Maximum {settings.MAX_UPLOAD_FILES} files allowed."
            )

        # Reject the whole request before anything touches the disk
        for upload in files:
            validate_upload(upload.filename, upload.content_type)

        upload_dir = init_upload_dir()
        for upload in files:
            logger.info(f"Received file upload: {upload.filename}")
            stored.append(await save_upload(upload, upload_dir))

        documents = await run_in_threadpool(_extract_all, stored)
        analysis = await run_in_threadpool(assistant.analyze_documents, documents)

        if user:
            for s, doc in zip(stored, documents):
                db.add(UploadedDocument(
                    user_id=user.id,
                    filename=s.name,
                    stored_path=str(s.path),
                    mime_type=s.mime_type,
                    size=s.size,
                    extracted_chars=len(doc.text),
                    analysis=analysis
                ))
            db.commit()

        return {
            "success": True,
            "files": [s.to_dict() for s in stored],
            "analysis": analysis
        }

    except AppException as e:
        logger.warning(f"Upload rejected: {e.detail}")
        cleanup_files(s.path for s in stored)
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "error": e.detail}
        )
    except Exception as e:
        logger.error(f"Error processing uploaded files: {e}", exc_info=True)
        db.rollback()
        cleanup_files(s.path for s in stored)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Error processing files"}
        )


@chat_router.get("/documents")
def list_documents(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    docs = db.query(UploadedDocument)\
        .filter(UploadedDocument.user_id == user.id)\
        .order_by(UploadedDocument.upload_date.desc(), UploadedDocument.id.desc())\
        .all()
    return [
        {
            "id": doc.id,
            "filename": doc.filename,
            "mimetype": doc.mime_type,
            "size": doc.size,
            "analysis": doc.analysis,
            "upload_date": doc.upload_date.isoformat() if doc.upload_date else None
        }
        for doc in docs
    ]
