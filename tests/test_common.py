"""
Tests for common utility modules.

Covers encryption/decryption roundtrip, money formatting, the pagination
helper, audit change tracking, and the compute_integrity_hash function.
"""

import hashlib
import json
import logging

import pytest

from app.common.audit import ACTION_SEVERITY, compute_integrity_hash, dump_details, get_changes
from app.common.encryption import decrypt_field, encrypt_field
from app.common.exceptions import InsufficientFundsError, LedgerServiceError, LedgerUnavailableError, NotFoundError
from app.common.money import dollars_to_cents, format_cents, mask_account_number
from app.common.pagination import PaginatedResponse, PaginationParams


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

class TestEncryption:
    """encrypt_field / decrypt_field roundtrip."""

    def test_encrypt_decrypt_roundtrip(self):
        plaintext = "1234567890"
        ciphertext = encrypt_field(plaintext)
        assert ciphertext != plaintext
        assert decrypt_field(ciphertext) == plaintext

    def test_encrypt_empty_string(self):
        """Empty string should pass through unchanged."""
        assert encrypt_field("") == ""
        assert decrypt_field("") == ""
        assert encrypt_field(None) is None

    def test_different_plaintexts_produce_different_ciphertexts(self):
        c1 = encrypt_field("account-111")
        c2 = encrypt_field("account-222")
        assert c1 != c2

    def test_undecryptable_value_is_logged(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING, logger="app.common.encryption"):
            assert decrypt_field("not-a-fernet-token") is None
        assert "Could not decrypt stored field" in caplog.text


# ---------------------------------------------------------------------------
# Money
# ---------------------------------------------------------------------------

class TestMoney:
    @pytest.mark.parametrize(
        "cents, expected",
        [(0, "$0.00"), (5, "$0.05"), (123_450, "$1,234.50"), (-1_000, "-$10.00"), (100_000_000, "$1,000,000.00")],
    )
    def test_format_cents(self, cents, expected):
        assert format_cents(cents) == expected

    @pytest.mark.parametrize("amount, expected", [(12.34, 1234), (0.1 + 0.2, 30), (1500, 150_000)])
    def test_dollars_to_cents(self, amount, expected):
        assert dollars_to_cents(amount) == expected

    def test_mask_account_number(self):
        assert mask_account_number("123456789") == "****6789"
        assert mask_account_number("123") == "****"
        assert mask_account_number(None) is None


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class TestPaginationParams:
    """PaginationParams model."""

    def test_default_values(self):
        p = PaginationParams()
        assert p.page == 1
        assert p.page_size == 25

    def test_offset_calculation(self):
        p = PaginationParams(page=3, page_size=10)
        assert p.offset == 20

    def test_page_must_be_positive(self):
        with pytest.raises(Exception):
            PaginationParams(page=0, page_size=25)


class TestPaginatedResponse:
    """PaginatedResponse.create() factory method."""

    def test_create_with_items(self):
        resp = PaginatedResponse.create(items=[{"id": 1}, {"id": 2}], total=10, page=1, page_size=2)
        assert resp.total == 10
        assert resp.total_pages == 5
        assert len(resp.items) == 2

    def test_create_empty(self):
        resp = PaginatedResponse.create(items=[], total=0, page=1, page_size=25)
        assert resp.total_pages == 0

    def test_total_pages_ceiling(self):
        resp = PaginatedResponse.create(items=[], total=11, page=1, page_size=5)
        assert resp.total_pages == 3  # ceil(11/5)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class TestExceptions:
    def test_insufficient_funds_figures(self):
        exc = InsufficientFundsError(balance_cents=100_000, held_cents=30_000, requested_cents=75_000)
        assert exc.status_code == 400
        assert exc.to_dict()["available_cents"] == 70_000
        assert exc.to_dict()["shortfall_cents"] == 5_000
        assert exc.message == (
            "Insufficient available funds. Balance: $1,000.00, Held: $300.00, "
            "Available: $700.00, Requested: $750.00, Shortfall: $50.00"
        )

    def test_not_found(self):
        exc = NotFoundError("Matter")
        assert exc.status_code == 404
        assert exc.message == "Matter not found"

    def test_ledger_unavailable_keeps_cause(self):
        cause = LedgerServiceError("Transfer rejected", "LIMIT_EXCEEDED", 422)
        exc = LedgerUnavailableError("disbursement", cause)
        assert exc.status_code == 502
        assert exc.code == "LEDGER_UNAVAILABLE"
        assert exc.to_dict() == {"ledger_code": "LIMIT_EXCEEDED", "ledger_status": 422}
        assert "Transfer rejected" in exc.message


# ---------------------------------------------------------------------------
# Audit helpers
# ---------------------------------------------------------------------------

class TestComputeIntegrityHash:
    """compute_integrity_hash produces consistent SHA-256 digests."""

    def test_consistent_hash(self):
        h1 = compute_integrity_hash("id1", "2025-01-01", "create", "client", "c1", None, None)
        h2 = compute_integrity_hash("id1", "2025-01-01", "create", "client", "c1", None, None)
        assert h1 == h2
        assert len(h1) == 64  # SHA-256 hex digest length

    def test_hash_includes_previous_hash(self):
        h1 = compute_integrity_hash("id1", "2025-01-01", "create", "client", "c1", None, None)
        h2 = compute_integrity_hash("id1", "2025-01-01", "create", "client", "c1", None, "abcdef")
        assert h1 != h2

    def test_hash_format_is_sha256(self):
        payload = "evt|2025-06-15T12:00:00|create|client|c-1|{}|prev"
        expected = hashlib.sha256(payload.encode()).hexdigest()
        assert compute_integrity_hash("evt", "2025-06-15T12:00:00", "create", "client", "c-1", "{}", "prev") == expected


class TestAuditDetails:
    def test_get_changes_only_reports_differences(self):
        old = {"name": "A", "email": "a@example.com", "phone": None}
        new = {"name": "B", "email": "a@example.com"}
        assert get_changes(old, new, ["name", "email", "phone"]) == {"name": {"from": "A", "to": "B"}}

    def test_dump_details_is_stable(self):
        dumped = dump_details({"b": 1, "a": {"from": None, "to": "x"}})
        assert dumped == json.dumps({"a": {"from": None, "to": "x"}, "b": 1})
        assert dump_details(None) is None

    def test_action_severity_mapping(self):
        assert ACTION_SEVERITY["create"] == "info"
        assert ACTION_SEVERITY["settings_change"] == "high"
        assert ACTION_SEVERITY["audit_purge"] == "critical"
