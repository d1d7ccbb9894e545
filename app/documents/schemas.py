import uuid
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator

from app.clients.schemas import ClientCreate
from app.config import settings


class DocumentAnalyzeRequest(BaseModel):
    text: str = Field(min_length=1, max_length=settings.max_document_chars)
    source_file: Optional[str] = Field(default=None, max_length=255)


class ExtractedTransaction(BaseModel):
    """A transaction as returned by the extraction model. Amounts are dollars."""

    transaction_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("transaction_date", "date")
    )
    type: Literal["deposit", "disbursement"]
    category: Optional[str] = None
    description: str
    amount: float
    payee: Optional[str] = None
    payor: Optional[str] = None
    check_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("check_number", "checkNumber"))
    reference: Optional[str] = None
    payment_method: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("payment_method", "paymentMethod")
    )


class ExtractedHold(BaseModel):
    type: str
    amount: float
    description: str
    status: Literal["active", "released"] = "active"
    created_date: Optional[str] = Field(default=None, validation_alias=AliasChoices("created_date", "createdDate"))
    expected_release_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("expected_release_date", "expectedReleaseDate")
    )
    release_conditions: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("release_conditions", "releaseConditions")
    )
    notes: Optional[str] = None


class ExtractionSummary(BaseModel):
    document_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("document_type", "documentType"))
    date_range: Optional[str] = Field(default=None, validation_alias=AliasChoices("date_range", "dateRange"))
    total_deposits: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("total_deposits", "totalDeposits")
    )
    total_disbursements: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("total_disbursements", "totalDisbursements")
    )
    notes: Optional[str] = None


class ExtractedDocument(BaseModel):
    transactions: list[ExtractedTransaction] = []
    holds: list[ExtractedHold] = []
    summary: Optional[ExtractionSummary] = None
    skipped: int = 0


class DocumentAnalyzeResponse(BaseModel):
    success: bool = True
    data: ExtractedDocument
    source_file: Optional[str] = None
    matter_id: uuid.UUID
    matter_name: str


class ImportTransaction(ExtractedTransaction):
    selected: bool = True


class ImportHold(ExtractedHold):
    selected: bool = True


class DocumentImportRequest(BaseModel):
    transactions: list[ImportTransaction] = []
    holds: list[ImportHold] = []
    source_file: Optional[str] = Field(default=None, max_length=255)


class ImportCounts(BaseModel):
    transactions: int
    holds: int


class DocumentImportResponse(BaseModel):
    success: bool = True
    imported: ImportCounts
    transaction_ids: list[uuid.UUID]
    hold_ids: list[uuid.UUID]
    errors: list[str] = []


class ExtractedMatter(BaseModel):
    name: str = Field(min_length=1)
    matter_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("matter_number", "matterNumber"))
    matter_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("matter_type", "matterType"))
    description: Optional[str] = None
    status: Optional[str] = None
    open_date: Optional[str] = Field(default=None, validation_alias=AliasChoices("open_date", "openDate"))
    responsible_attorney: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("responsible_attorney", "responsibleAttorney")
    )
    practice_area: Optional[str] = Field(default=None, validation_alias=AliasChoices("practice_area", "practiceArea"))
    court: Optional[str] = None
    court_case_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("court_case_number", "courtCaseNumber")
    )
    opposing_party: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("opposing_party", "opposingParty")
    )
    opposing_counsel: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("opposing_counsel", "opposingCounsel")
    )


class ExtractedClient(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class FinancialSummary(BaseModel):
    trust_balance: Optional[float] = Field(default=None, validation_alias=AliasChoices("trust_balance", "trustBalance"))
    total_deposits: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("total_deposits", "totalDeposits")
    )
    total_disbursements: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("total_disbursements", "totalDisbursements")
    )
    active_holds: Optional[float] = Field(default=None, validation_alias=AliasChoices("active_holds", "activeHolds"))
    available_balance: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("available_balance", "availableBalance")
    )


class ExtractedMatterDocument(BaseModel):
    matter: ExtractedMatter
    client: ExtractedClient
    financial_summary: Optional[FinancialSummary] = None
    transactions: list[ExtractedTransaction] = []
    holds: list[ExtractedHold] = []
    skipped: int = 0


class MatterImportAnalyzeResponse(BaseModel):
    success: bool = True
    data: ExtractedMatterDocument
    source_file: Optional[str] = None
    text_length: int


class MatterImportRequest(BaseModel):
    matter: ExtractedMatter
    client: Optional[ClientCreate] = None
    existing_client_id: Optional[uuid.UUID] = None
    transactions: list[ImportTransaction] = []
    holds: list[ImportHold] = []
    source_file: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def check_client(self) -> "MatterImportRequest":
        if self.existing_client_id is None and self.client is None:
            raise ValueError("Either client or existing_client_id must be provided")
        return self


class ImportedMatterRef(BaseModel):
    id: uuid.UUID
    name: str
    matter_number: str


class ImportedClientRef(BaseModel):
    id: uuid.UUID
    name: str
    is_new: bool


class MatterImportResponse(BaseModel):
    success: bool = True
    matter: ImportedMatterRef
    client: ImportedClientRef
    imported: ImportCounts
    transaction_ids: list[uuid.UUID]
    hold_ids: list[uuid.UUID]
    errors: list[str] = []
