"""
LLM-backed extraction of trust transactions and holds from document text.

The model is treated as an opaque text-to-JSON oracle. Its reply is parsed
and each item validated on its own; items missing required fields are
dropped and counted rather than failing the whole document.
"""

import json
import logging
import re
from typing import Optional

import httpx
from pydantic import ValidationError

from app.common.exceptions import ExtractionError
from app.config import settings
from app.documents.schemas import (
    ExtractedClient,
    ExtractedDocument,
    ExtractedHold,
    ExtractedMatter,
    ExtractedMatterDocument,
    ExtractedTransaction,
    ExtractionSummary,
    FinancialSummary,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

ITEM_FORMAT = """"transactions": a list of objects with
  date (YYYY-MM-DD), type ("deposit" or "disbursement"), category,
  description, amount (dollars as a number), payee (for disbursements),
  payor (for deposits), checkNumber, reference, paymentMethod.
  date, type, description and amount are required.

"holds": a list of objects with
  type (retainer, settlement, escrow or compliance), amount (dollars as a
  number), description, status ("active" or "released"), createdDate,
  expectedReleaseDate, releaseConditions, notes.
  type, amount, description and status are required."""

SYSTEM_PROMPT = """You read legal and financial documents and extract IOLTA trust account activity.
The records belong to the existing matter "{matter_name}".

Return a single JSON object with three keys:

""" + ITEM_FORMAT + """

"summary": an object with documentType, dateRange, totalDeposits,
  totalDisbursements and notes.

Write amounts as plain numbers ("$1,500.00" becomes 1500). Omit fields
that are not in the document. Extract every transaction and hold you can
find. Reply with the JSON object only."""

USER_PROMPT = """Extract all transactions and holds for the matter "{matter_name}" from this document:
---
{text}
---"""

MATTER_SYSTEM_PROMPT = """You read legal and financial documents describing a single legal matter and
its IOLTA trust account activity.

Return a single JSON object with these keys:

"matter": an object with name (required), matterNumber, matterType,
  description, status ("open" or "closed"), openDate (YYYY-MM-DD),
  responsibleAttorney, practiceArea, court, courtCaseNumber,
  opposingParty, opposingCounsel.

"client": an object with name (required), email, phone, address.
  Infer the client name from the matter name when the document does not
  state it ("Johnson Manufacturing" from "JOHNSON MANUFACTURING - SMITH V.
  JOHNSON LITIGATION").

"financialSummary": an object with trustBalance, totalDeposits,
  totalDisbursements, activeHolds and availableBalance, all in dollars.

""" + ITEM_FORMAT + """

Write amounts as plain numbers ("$1,500.00" becomes 1500). Omit fields
that are not in the document. Reply with the JSON object only."""

MATTER_USER_PROMPT = """Extract the matter, client, transactions and holds from this document:
---
{text}
---"""


def _load_payload(content: str) -> dict:
    match = _FENCE_RE.search(content)
    raw = match.group(1) if match else content
    try:
        payload = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        raise ExtractionError(
            "Failed to parse AI response as JSON. The document format may not be supported."
        ) from exc
    if not isinstance(payload, dict):
        raise ExtractionError("AI response was not a JSON object")
    return payload


def _parse_items(payload: dict) -> tuple[list[ExtractedTransaction], list[ExtractedHold], int]:
    skipped = 0
    transactions = []
    for item in payload.get("transactions") or []:
        try:
            transactions.append(ExtractedTransaction.model_validate(item))
        except ValidationError:
            skipped += 1

    holds = []
    for item in payload.get("holds") or []:
        try:
            holds.append(ExtractedHold.model_validate(item))
        except ValidationError:
            skipped += 1

    if skipped:
        logger.warning("Dropped %d extracted item(s) missing required fields", skipped)
    return transactions, holds, skipped


def parse_model_output(content: str) -> ExtractedDocument:
    """Parse the model's reply into an ``ExtractedDocument``."""
    payload = _load_payload(content)
    transactions, holds, skipped = _parse_items(payload)

    summary = None
    if isinstance(payload.get("summary"), dict):
        try:
            summary = ExtractionSummary.model_validate(payload["summary"])
        except ValidationError:
            logger.warning("Ignoring malformed extraction summary")

    return ExtractedDocument(transactions=transactions, holds=holds, summary=summary, skipped=skipped)


def infer_client_name(matter_name: str) -> str:
    """Client name from the part of the matter name before the first hyphen."""
    head = matter_name.split("-", 1)[0].strip()
    return head or "Unknown Client"


def parse_matter_output(content: str) -> ExtractedMatterDocument:
    """Parse a whole-matter reply: matter, client, summary and items.

    A reply without a matter name is rejected. A missing client name is
    inferred from the matter name.
    """
    payload = _load_payload(content)

    matter_data = payload.get("matter")
    if not isinstance(matter_data, dict) or not str(matter_data.get("name") or "").strip():
        raise ExtractionError("Could not extract matter name from document")
    try:
        matter = ExtractedMatter.model_validate(matter_data)
    except ValidationError as exc:
        raise ExtractionError("Could not extract matter details from document") from exc

    client_data = payload.get("client") if isinstance(payload.get("client"), dict) else {}
    if not str(client_data.get("name") or "").strip():
        client_data = {**client_data, "name": infer_client_name(matter.name)}
    try:
        client = ExtractedClient.model_validate(client_data)
    except ValidationError:
        client = ExtractedClient(name=infer_client_name(matter.name))

    financial_summary = None
    raw_summary = payload.get("financialSummary", payload.get("financial_summary"))
    if isinstance(raw_summary, dict):
        try:
            financial_summary = FinancialSummary.model_validate(raw_summary)
        except ValidationError:
            logger.warning("Ignoring malformed financial summary")

    transactions, holds, skipped = _parse_items(payload)
    return ExtractedMatterDocument(
        matter=matter,
        client=client,
        financial_summary=financial_summary,
        transactions=transactions,
        holds=holds,
        skipped=skipped,
    )


class LLMExtractor:
    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _complete(self, system_prompt: str, user_prompt: str) -> str:
        if not self.is_configured:
            raise ExtractionError("Document extraction API key not configured")

        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": 0,
            "max_tokens": 8000,
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.api_url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Extraction request failed: %s", exc)
            raise ExtractionError(f"Extraction service unreachable: {exc}") from exc

        if resp.is_error:
            logger.error("Extraction service returned %s: %s", resp.status_code, resp.text[:500])
            raise ExtractionError(f"Extraction service error: {resp.status_code}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ExtractionError("No response from AI model") from exc
        if not content:
            raise ExtractionError("No response from AI model")
        return content

    async def extract(self, text: str, matter_name: str) -> ExtractedDocument:
        content = await self._complete(
            SYSTEM_PROMPT.format(matter_name=matter_name),
            USER_PROMPT.format(matter_name=matter_name, text=text),
        )
        return parse_model_output(content)

    async def extract_matter(self, text: str) -> ExtractedMatterDocument:
        content = await self._complete(MATTER_SYSTEM_PROMPT, MATTER_USER_PROMPT.format(text=text))
        return parse_matter_output(content)


def get_extractor() -> LLMExtractor:
    return LLMExtractor(
        api_url=settings.llm_api_url,
        api_key=settings.llm_api_key or settings.ledger_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds,
    )
