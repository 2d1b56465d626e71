# avtools/errors.py
"""
Error taxonomy shared by the store client, the read/write handlers and the
FastAPI exception handlers in avtools.main.
"""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple


class ConfigurationError(RuntimeError):
    """Required settings are missing. Raised at startup, never per request."""


class StoreRequestFailed(Exception):
    """The record store answered with a non-2xx status."""

    def __init__(self, table: str, status_code: int, body: str = ""):
        self.table = table
        self.status_code = status_code
        self.body = body
        super().__init__(f"Record store request on {table!r} failed (HTTP {status_code}): {body}")


UpstreamRequestFailed = StoreRequestFailed


class ValidationFailed(Exception):
    """A submission failed validation. `fields` maps field name -> messages."""

    def __init__(self, fields: Dict[str, List[str]]):
        self.fields = fields
        super().__init__("Validation failed: " + ", ".join(sorted(fields)))

    @classmethod
    def from_errors(cls, errors: Sequence[dict]) -> "ValidationFailed":
        """
        Build from pydantic / FastAPI error dicts. The location prefix
        ("body", "query", "path") is dropped so callers see plain field names.
        """
        fields: Dict[str, List[str]] = {}
        for err in errors:
            loc = [str(p) for p in err.get("loc", ())]
            if loc and loc[0] in ("body", "query", "path"):
                loc = loc[1:]
            name = ".".join(loc) or "body"
            fields.setdefault(name, []).append(err.get("msg", "Invalid value"))
        return cls(fields)

    def to_payload(self) -> dict:
        return {"ok": False, "error": "Validation failed", "fields": self.fields}


class ReviewCreateFailed(Exception):
    """Every product-link binding was rejected by the store."""

    def __init__(self, attempts: List[Tuple[str, Exception]]):
        self.attempts = attempts
        last = attempts[-1][1] if attempts else None
        super().__init__(str(last) if last else "No product-link binding was attempted")

    @property
    def attempted(self) -> List[str]:
        return [name for name, _ in self.attempts]

    @property
    def last_error(self):
        return self.attempts[-1][1] if self.attempts else None
