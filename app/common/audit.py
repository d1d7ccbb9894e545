"""
Audit event helpers.

Every mutation in the system writes an audit entry. Entries carry a SHA-256
integrity hash chained to the previous entry's hash, so tampering with a
stored row (other than removing a whole prefix of the log through the bulk
delete endpoint) is detectable.
"""

import hashlib
import json
from typing import Any, Optional

# Severity mapping
ACTION_SEVERITY = {
    "create": "info",
    "update": "low",
    "delete": "medium",
    "export": "medium",
    "close": "medium",
    "release": "medium",
    "partial_release": "medium",
    "cancel": "medium",
    "ledger_sync": "low",
    "document_analyzed": "info",
    "document_import": "medium",
    "settings_change": "high",
    "audit_purge": "critical",
}


def compute_integrity_hash(
    event_id: str,
    timestamp: str,
    action: str,
    entity_type: str,
    entity_id: str,
    details_json: Optional[str],
    previous_hash: Optional[str],
) -> str:
    """Compute SHA-256 hash chain entry for an audit event."""
    payload = (
        f"{event_id}|{timestamp}|{action}"
        f"|{entity_type}|{entity_id}"
        f"|{details_json or ''}|{previous_hash or ''}"
    )
    return hashlib.sha256(payload.encode()).hexdigest()


def get_changes(old: dict[str, Any], new: dict[str, Any], fields: list[str]) -> dict[str, dict[str, Any]]:
    """Return ``{field: {"from": old, "to": new}}`` for tracked fields that differ."""
    changes = {}
    for field in fields:
        if field in new and old.get(field) != new[field]:
            changes[field] = {"from": old.get(field), "to": new[field]}
    return changes


def dump_details(details: Optional[dict]) -> Optional[str]:
    if details is None:
        return None
    return json.dumps(details, default=str, sort_keys=True)
