"""
Invoice records; storing and removing the uploaded files.
"""
import logging
import os
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload
from busfleet.core.config import settings
from busfleet.core.errors import BadRequestError, NotFoundError
from busfleet.core.utils import round_money
from busfleet.models.expense import BusExpense
from busfleet.models.invoice import Invoice
from busfleet.models.user import User
from busfleet.schemas.invoice import InvoiceStats, InvoiceUpdate
from busfleet.services.audit_service import AuditAction, record_audit

logger = logging.getLogger(__name__)

INVOICE_ENTITY = "INVOICE"
INVOICE_SUBDIR = "invoices"


def invoice_dir() -> str:
    return os.path.join(settings.UPLOAD_DIR, INVOICE_SUBDIR)


def check_upload(content_type: Optional[str], size: int) -> None:
    """Reject files of a type or size the invoice store does not accept."""
    if content_type not in settings.ALLOWED_INVOICE_TYPES:
        raise BadRequestError(
            f"Invalid file type: {content_type}",
            details={"allowed": settings.ALLOWED_INVOICE_TYPES},
        )
    if size == 0:
        raise BadRequestError("Uploaded file is empty")
    if size > settings.MAX_UPLOAD_SIZE:
        raise BadRequestError(
            "Uploaded file is too large",
            details={"size": size, "max_size": settings.MAX_UPLOAD_SIZE},
        )


def store_file(original_name: Optional[str], content: bytes) -> Tuple[str, str]:
    """Write the file under a fresh name; returns (disk path, public URL)."""
    os.makedirs(invoice_dir(), exist_ok=True)
    file_ext = os.path.splitext(original_name or "")[1]
    unique_filename = f"invoice-{uuid.uuid4()}{file_ext}"
    file_path = os.path.join(invoice_dir(), unique_filename)
    with open(file_path, "wb") as buffer:
        buffer.write(content)
    return file_path, f"/uploads/{INVOICE_SUBDIR}/{unique_filename}"


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.query(Invoice).options(joinedload(Invoice.uploader)).filter(
        Invoice.id == invoice_id
    ).first()
    if not invoice:
        raise NotFoundError("Invoice not found")
    return invoice


def list_invoices(
    db: Session,
    page: int,
    limit: int,
    provider_name: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
) -> Tuple[List[Invoice], int]:
    query = db.query(Invoice)
    if provider_name:
        query = query.filter(Invoice.provider_name.ilike(f"%{provider_name}%"))
    if start_date:
        query = query.filter(Invoice.issue_date >= start_date)
    if end_date:
        query = query.filter(Invoice.issue_date <= end_date)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Invoice.invoice_number.ilike(pattern), Invoice.provider_name.ilike(pattern)))

    total = query.count()
    invoices = query.options(joinedload(Invoice.uploader)).order_by(
        Invoice.created_at.desc(), Invoice.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    return invoices, total


def create_invoice(
    db: Session,
    actor: User,
    file_path: str,
    file_url: str,
    file_name: Optional[str],
    mime_type: Optional[str],
    invoice_number: Optional[str] = None,
    provider_name: Optional[str] = None,
    issue_date: Optional[date] = None,
    total_amount: Optional[Decimal] = None,
) -> Invoice:
    invoice = Invoice(
        invoice_number=invoice_number or None,
        provider_name=provider_name or None,
        issue_date=issue_date,
        total_amount=total_amount,
        file_url=file_url,
        file_path=file_path,
        file_name=file_name,
        mime_type=mime_type,
        uploaded_by=actor.id,
    )
    db.add(invoice)
    db.flush()
    record_audit(
        db, actor.id, AuditAction.CREATE, INVOICE_ENTITY, invoice.id,
        f"Invoice {invoice.invoice_number or invoice.id} uploaded",
        {"file_url": file_url, "mime_type": mime_type},
    )
    db.commit()
    logger.info(f"Invoice {invoice.id} uploaded by user {actor.id} ({mime_type})")
    return get_invoice(db, invoice.id)


def update_invoice(db: Session, invoice_id: int, data: InvoiceUpdate, actor: User) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(invoice, field, value)
    record_audit(
        db, actor.id, AuditAction.UPDATE, INVOICE_ENTITY, invoice.id,
        f"Invoice {invoice.id} updated", {"fields": sorted(changes)},
    )
    db.commit()
    return get_invoice(db, invoice_id)


def delete_invoice(db: Session, invoice_id: int, actor: User) -> None:
    """Delete an invoice and its file; invoices backing expenses are kept."""
    invoice = get_invoice(db, invoice_id)
    linked = db.query(BusExpense).filter(BusExpense.invoice_id == invoice.id).count()
    if linked:
        raise BadRequestError(
            "Invoice cannot be deleted because expenses reference it",
            details={"expenses": linked},
        )

    file_path = invoice.file_path
    record_audit(
        db, actor.id, AuditAction.DELETE, INVOICE_ENTITY, invoice.id,
        f"Invoice {invoice.invoice_number or invoice.id} deleted", {"file_url": invoice.file_url},
    )
    db.delete(invoice)
    db.commit()

    if file_path and os.path.exists(file_path):
        os.remove(file_path)
    logger.info(f"Invoice {invoice_id} deleted by user {actor.id}")


def invoice_stats(db: Session, today: Optional[date] = None) -> InvoiceStats:
    """Invoice count, how many were uploaded this month, and their summed amount."""
    today = today or date.today()
    month_start = datetime.combine(today.replace(day=1), time.min)
    total = db.query(Invoice).count()
    this_month = db.query(Invoice).filter(Invoice.created_at >= month_start).count()
    total_amount = db.query(func.sum(Invoice.total_amount)).scalar() or Decimal(0)
    return InvoiceStats(
        total=total,
        this_month=this_month,
        total_amount=round_money(total_amount),
    )
