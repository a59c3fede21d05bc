"""
JSON schemas for ledger notifications.

Each committed state change is written to the event log with one of these
payload shapes. External subscribers can rely on them as the wire contract.
"""

_ADDRESS = {"type": "string", "minLength": 1}


def _event_schema(title: str, properties: dict) -> dict:
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "title": title,
        "type": "object",
        "required": sorted(properties),
        "properties": properties,
        "additionalProperties": False,
    }


EVENT_SCHEMAS: dict[str, dict] = {
    "ProviderRegistered": _event_schema("ProviderRegistered", {"provider": _ADDRESS}),
    "ProviderRevoked": _event_schema("ProviderRevoked", {"provider": _ADDRESS}),
    "PatientRegistered": _event_schema("PatientRegistered", {"patient": _ADDRESS}),
    "ProviderAuthorized": _event_schema(
        "ProviderAuthorized", {"patient": _ADDRESS, "provider": _ADDRESS}
    ),
    "ProviderAccessRevoked": _event_schema(
        "ProviderAccessRevoked", {"patient": _ADDRESS, "provider": _ADDRESS}
    ),
    "RecordAdded": _event_schema(
        "RecordAdded",
        {
            "patient": _ADDRESS,
            "provider": _ADDRESS,
            # content hashes are opaque, so any string is accepted
            "content_hash": {"type": "string"},
        },
    ),
}
