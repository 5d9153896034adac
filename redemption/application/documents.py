"""
Documents Hub: per-user document metadata (PDF only, up to 10 MB).

Storing the file bytes is the caller's job; this module records where the
file lives. All operations require the "documents-hub" plugin.
"""
import logging
import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from redemption.application.entities import field_errors_from
from redemption.application.plugins import PluginRegistry, require_plugin
from redemption.domain.errors import NotFoundError, ValidationError
from redemption.infrastructure.db.models import DocumentModel, User

logger = logging.getLogger(__name__)

PLUGIN_ID = "documents-hub"
PDF_MIME_TYPE = "application/pdf"
MAX_FILE_SIZE = 10 * 1024 * 1024

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


class DocumentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    file_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    file_size: int = Field(ge=0, le=MAX_FILE_SIZE)
    mime_type: str = PDF_MIME_TYPE
    file_path: str | None = None


def format_file_size(size: int) -> str:
    """1536 -> "1.5 KB" """
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(size / 1024 ** i, 2)
    return f"{value:g} {units[i]}"


def safe_file_name(file_name: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", file_name)


def document_to_dict(doc: DocumentModel) -> dict:
    return {
        "id": doc.id,
        "name": doc.name,
        "file_name": doc.file_name,
        "file_size": doc.file_size,
        "file_size_label": format_file_size(doc.file_size),
        "file_path": doc.file_path,
        "mime_type": doc.mime_type,
        "created_at": doc.created_at.isoformat() if doc.created_at else None,
    }


class DocumentService:
    def __init__(self, db: Session, registry: PluginRegistry | None = None):
        self.db = db
        self.registry = registry

    def list_documents(self, user: User) -> list[dict]:
        require_plugin(user, PLUGIN_ID, self.registry)
        docs = (
            self.db.query(DocumentModel)
            .filter(DocumentModel.user_id == user.id)
            .order_by(DocumentModel.created_at.desc(), DocumentModel.id.desc())
            .all()
        )
        return [document_to_dict(d) for d in docs]

    def get_document(self, user: User, document_id: int) -> DocumentModel:
        require_plugin(user, PLUGIN_ID, self.registry)
        doc = self.db.query(DocumentModel).filter(
            DocumentModel.id == document_id,
            DocumentModel.user_id == user.id,
        ).first()
        if doc is None:
            raise NotFoundError("Document not found")
        return doc

    def create_document(self, user: User, data: dict) -> DocumentModel:
        """
        Raises:
            PluginAccessError: documents-hub not enabled
            ValidationError: bad name/size, or not a PDF
        """
        require_plugin(user, PLUGIN_ID, self.registry)
        try:
            parsed = DocumentCreate.model_validate(data)
        except PydanticValidationError as exc:
            errors = field_errors_from(exc)
            if "file_size" in errors:
                errors["file_size"] = f"File size must be less than {MAX_FILE_SIZE // 1024 // 1024}MB"
            raise ValidationError(errors)
        if parsed.mime_type != PDF_MIME_TYPE:
            raise ValidationError({"mime_type": "Only PDF files are allowed"})

        file_path = parsed.file_path or f"/uploads/documents/{user.id}/{safe_file_name(parsed.file_name)}"
        doc = DocumentModel(
            user_id=user.id,
            name=parsed.name,
            file_name=parsed.file_name,
            file_size=parsed.file_size,
            file_path=file_path,
            mime_type=parsed.mime_type,
        )
        self.db.add(doc)
        self.db.commit()
        logger.info("Document %s registered for user_id=%s", doc.id, user.id)
        return doc

    def delete_document(self, user: User, document_id: int) -> None:
        doc = self.get_document(user, document_id)
        self.db.delete(doc)
        self.db.commit()
        logger.info("Document %s deleted for user_id=%s", document_id, user.id)
