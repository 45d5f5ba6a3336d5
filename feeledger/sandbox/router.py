"""Sandbox fee backend router: the endpoints the ledger client consumes, served from a local database."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from feeledger.api.v1.classrooms.schemas import ClassroomListResponse
from feeledger.api.v1.student_payments.schemas import (
    AddPaymentRequest,
    AddPaymentResponse,
    ClassReportRequest,
    DeletePaymentsRequest,
    DeletePaymentsResponse,
    FeeSummary,
    StudentPaymentsResponse,
    StudentReportRequest,
    UpdatePaymentRequest,
    UpdatePaymentResponse,
)
from feeledger.api.v1.student_payments.service import PDF_MEDIA_TYPE, XLSX_MEDIA_TYPE
from feeledger.core.exceptions import ServiceError
from feeledger.core.http import attachment_disposition
from feeledger.db.session import get_db

from . import service

router = APIRouter(prefix="/api", tags=["sandbox"])


@router.get("/classrooms/{school_id}/classes", response_model=ClassroomListResponse)
async def list_classes(school_id: str, db: AsyncSession = Depends(get_db)) -> ClassroomListResponse:
    return await service.list_classes(db, school_id)


@router.get("/student-payments/school/{school_id}/summary", response_model=FeeSummary)
async def get_summary(
    school_id: str,
    db: AsyncSession = Depends(get_db),
) -> FeeSummary:
    return await service.get_summary(db, school_id)


@router.get(
    "/student-payments/school/{school_id}/student/{student_id}/payments",
    response_model=StudentPaymentsResponse,
)
async def list_student_payments(
    school_id: str,
    student_id: str,
    class_id: Optional[str] = Query(None, alias="classId"),
    db: AsyncSession = Depends(get_db),
) -> StudentPaymentsResponse:
    try:
        return await service.list_student_payments(db, school_id, student_id, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/student-payments/school/{school_id}/payments",
    response_model=AddPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_payment(
    school_id: str,
    payload: AddPaymentRequest,
    db: AsyncSession = Depends(get_db),
) -> AddPaymentResponse:
    try:
        return await service.add_payment(db, school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/student-payments/school/{school_id}/payments/bulk-delete", response_model=DeletePaymentsResponse)
async def delete_payments(
    school_id: str,
    payload: DeletePaymentsRequest,
    db: AsyncSession = Depends(get_db),
) -> DeletePaymentsResponse:
    try:
        return await service.delete_payments(db, school_id, payload.payment_ids)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/student-payments/school/{school_id}/payments/{payment_id}", response_model=UpdatePaymentResponse)
async def update_payment(
    school_id: str,
    payment_id: str,
    payload: UpdatePaymentRequest,
    db: AsyncSession = Depends(get_db),
) -> UpdatePaymentResponse:
    try:
        return await service.update_payment(db, school_id, payment_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/student-payments/class/payment-report-class-wise")
async def download_class_report(payload: ClassReportRequest, db: AsyncSession = Depends(get_db)) -> Response:
    try:
        content, filename = await service.build_class_report(db, payload.school_id, payload.class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": attachment_disposition(filename)},
    )


@router.post("/student-payments/student/payment-report")
async def download_student_report(payload: StudentReportRequest, db: AsyncSession = Depends(get_db)) -> Response:
    try:
        content, filename = await service.build_student_report(db, payload.school_id, payload.student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": attachment_disposition(filename)},
    )
