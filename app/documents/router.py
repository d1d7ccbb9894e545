import uuid
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.service import create_audit_log, request_origin
from app.database import get_db
from app.dependencies import LedgerDep
from app.documents.extractor import LLMExtractor, get_extractor
from app.documents.schemas import (
    DocumentAnalyzeRequest,
    DocumentAnalyzeResponse,
    DocumentImportRequest,
    DocumentImportResponse,
    ImportCounts,
    ImportedClientRef,
    ImportedMatterRef,
    MatterImportAnalyzeResponse,
    MatterImportRequest,
    MatterImportResponse,
)
from app.documents.service import ImportResult, import_items, import_matter
from app.matters.service import get_matter

router = APIRouter()

UNREADABLE_DOCUMENT = "Could not extract text from the document. Please ensure the file contains readable text."


async def _audit_import(
    db: AsyncSession, matter_id: uuid.UUID, result: ImportResult, source_file: Optional[str], origin: dict
) -> None:
    item_details = {"source": "document_import", "source_file": source_file, "matter_id": str(matter_id)}
    for txn_id in result.transaction_ids:
        await create_audit_log(db, "transaction", txn_id, "create", details=item_details, **origin)
    for hold_id in result.hold_ids:
        await create_audit_log(db, "hold", hold_id, "create", details=item_details, **origin)
    await create_audit_log(
        db, "matter", matter_id, "document_import",
        details={
            "source_file": source_file,
            "transactions_imported": len(result.transaction_ids),
            "holds_imported": len(result.hold_ids),
            "errors": result.errors or None,
        },
        **origin,
    )


@router.post("/import", response_model=MatterImportAnalyzeResponse)
async def analyze_matter_document(
    data: DocumentAnalyzeRequest,
    extractor: Annotated[LLMExtractor, Depends(get_extractor)],
):
    if not data.text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=UNREADABLE_DOCUMENT)

    extracted = await extractor.extract_matter(data.text)
    return MatterImportAnalyzeResponse(data=extracted, source_file=data.source_file, text_length=len(data.text))


@router.post("/import/confirm", response_model=MatterImportResponse, status_code=status.HTTP_201_CREATED)
async def confirm_matter_import(
    data: MatterImportRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    result = await import_matter(db, data, ledger)
    matter, client = result.matter, result.client

    origin = request_origin(request)
    if result.client_is_new:
        await create_audit_log(
            db, "client", client.id, "create",
            details={"name": client.name, "email": client.email, "source": "document_import"},
            **origin,
        )
    await create_audit_log(
        db, "matter", matter.id, "create",
        details={
            "name": matter.name,
            "matter_number": matter.matter_number,
            "client_id": str(client.id),
            "source": "document_import",
            "source_file": data.source_file,
            "source_matter_number": data.matter.matter_number,
            "external_account_id": matter.external_account_id,
        },
        **origin,
    )
    await _audit_import(db, matter.id, result.items, data.source_file, origin)

    return MatterImportResponse(
        matter=ImportedMatterRef(id=matter.id, name=matter.name, matter_number=matter.matter_number),
        client=ImportedClientRef(id=client.id, name=client.name, is_new=result.client_is_new),
        imported=ImportCounts(
            transactions=len(result.items.transaction_ids), holds=len(result.items.hold_ids)
        ),
        transaction_ids=result.items.transaction_ids,
        hold_ids=result.items.hold_ids,
        errors=result.items.errors,
    )


@router.post("/{matter_id}/analyze", response_model=DocumentAnalyzeResponse)
async def analyze_document(
    matter_id: uuid.UUID,
    data: DocumentAnalyzeRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    extractor: Annotated[LLMExtractor, Depends(get_extractor)],
):
    matter = await get_matter(db, matter_id)
    if matter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Matter not found")
    if not data.text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=UNREADABLE_DOCUMENT)

    extracted = await extractor.extract(data.text, matter.name)
    await create_audit_log(
        db, "matter", matter.id, "document_analyzed",
        details={
            "source_file": data.source_file,
            "transactions_found": len(extracted.transactions),
            "holds_found": len(extracted.holds),
            "skipped": extracted.skipped,
        },
        **request_origin(request),
    )
    return DocumentAnalyzeResponse(
        data=extracted, source_file=data.source_file, matter_id=matter.id, matter_name=matter.name
    )


@router.post("/{matter_id}/analyze/confirm", response_model=DocumentImportResponse)
async def confirm_document_import(
    matter_id: uuid.UUID,
    data: DocumentImportRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: LedgerDep,
):
    matter = await get_matter(db, matter_id)
    if matter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Matter not found")
    if matter.is_closed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot import data to a closed matter")

    result = await import_items(db, matter_id, data.transactions, data.holds, ledger)
    await _audit_import(db, matter_id, result, data.source_file, request_origin(request))

    return DocumentImportResponse(
        imported=ImportCounts(transactions=len(result.transaction_ids), holds=len(result.hold_ids)),
        transaction_ids=result.transaction_ids,
        hold_ids=result.hold_ids,
        errors=result.errors,
    )
