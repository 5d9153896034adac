"""
Documents Hub API (requires the documents-hub plugin).
"""
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from redemption.api.deps import get_db, get_current_user
from redemption.application.documents import DocumentService, document_to_dict
from redemption.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


@router.get("")
def list_documents(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"success": True, "data": {"documents": DocumentService(db).list_documents(user)}}


@router.post("", status_code=status.HTTP_201_CREATED)
def register_document(payload: dict = Body(...), user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    doc = DocumentService(db).create_document(user, payload)
    return {"success": True, "data": document_to_dict(doc)}


@router.delete("/{document_id}")
def delete_document(document_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    DocumentService(db).delete_document(user, document_id)
    return {"success": True}
