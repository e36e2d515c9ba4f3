"""
Invoice routes: document upload and billing details.
"""
import os
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from decimal import Decimal
from busfleet.core.config import settings
from busfleet.core.utils import pagination_meta, success_response
from busfleet.db.session import get_db
from busfleet.models.user import User
from busfleet.schemas.common import DeleteResult, PageResponse, SuccessResponse
from busfleet.schemas.invoice import InvoiceResponse, InvoiceStats, InvoiceUpdate
from busfleet.api.dependencies import get_current_user, require_admin
from busfleet.services import invoice_service

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=PageResponse[InvoiceResponse])
async def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    provider_name: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List invoices, newest upload first."""
    invoices, total = invoice_service.list_invoices(
        db, page, limit, provider_name=provider_name,
        start_date=start_date, end_date=end_date, search=search
    )
    return success_response(
        [InvoiceResponse.model_validate(i) for i in invoices],
        meta=pagination_meta(page, limit, total)
    )


@router.get("/stats", response_model=SuccessResponse[InvoiceStats])
async def get_invoice_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success_response(invoice_service.invoice_stats(db))


@router.get("/{invoice_id}", response_model=SuccessResponse[InvoiceResponse])
async def get_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get invoice details."""
    return success_response(InvoiceResponse.model_validate(invoice_service.get_invoice(db, invoice_id)))


@router.post("", response_model=SuccessResponse[InvoiceResponse], status_code=status.HTTP_201_CREATED)
async def upload_invoice(
    file: UploadFile = File(...),
    invoice_number: Optional[str] = Form(None, max_length=100),
    provider_name: Optional[str] = Form(None, max_length=200),
    issue_date: Optional[date] = Form(None),
    total_amount: Optional[Decimal] = Form(None, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Upload an invoice document (PDF, image or Office file up to the size limit)."""
    content = await file.read()
    invoice_service.check_upload(file.content_type, len(content))

    file_path, file_url = invoice_service.store_file(file.filename, content)
    try:
        invoice = invoice_service.create_invoice(
            db, current_user, file_path, file_url, file.filename, file.content_type,
            invoice_number=invoice_number, provider_name=provider_name,
            issue_date=issue_date, total_amount=total_amount,
        )
    except Exception:
        # No record, no file
        if os.path.exists(file_path):
            os.remove(file_path)
        raise
    return success_response(InvoiceResponse.model_validate(invoice), message="Invoice uploaded")


@router.patch("/{invoice_id}", response_model=SuccessResponse[InvoiceResponse])
async def update_invoice(
    invoice_id: int,
    invoice_data: InvoiceUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update billing details of an invoice."""
    invoice = invoice_service.update_invoice(db, invoice_id, invoice_data, current_user)
    return success_response(InvoiceResponse.model_validate(invoice))


@router.delete("/{invoice_id}", response_model=SuccessResponse[DeleteResult])
async def delete_invoice(
    invoice_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete an invoice and its file unless expenses reference it."""
    invoice_service.delete_invoice(db, invoice_id, current_user)
    return success_response(DeleteResult())
