from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from src.note_engine.domain.models.note import ParsedNote
from src.note_engine.domain.models.updates import SectionChange

logger = logging.getLogger("audit")


def note_fingerprint(text: str) -> str:
    """Short, stable digest of a note so events about the same text can be correlated."""

    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


@dataclass
class NoteAuditEvent:
    """One audited action on a clinical note.

    Notes are PHI: an event carries the request id, a fingerprint of the
    text and section-level metadata, never note text, source material or
    generated content.
    """

    action: str
    request_id: Optional[str] = None
    note_fingerprint: Optional[str] = None
    sections: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class AuditService:
    def log_note_event(
        self,
        action: str,
        *,
        request_id: Optional[str] = None,
        note_text: Optional[str] = None,
        parsed_note: Optional[ParsedNote] = None,
        changes: Optional[Iterable[SectionChange]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> NoteAuditEvent:
        """Emit ``action`` as a single JSON line on the ``audit`` logger.

        Section types are taken from ``changes`` when given (mapped to the
        change action), otherwise from ``parsed_note`` (mapped to the detected
        header kind). ``metadata`` must stay small and free of note text.
        """

        if changes is not None:
            sections = {c.section_type.value: c.action.value for c in changes}
        elif parsed_note is not None:
            sections = {
                s.type.value: "header" if s.metadata.original_header_text else "inferred"
                for s in parsed_note.sections
            }
        else:
            sections = {}

        if note_text is None and parsed_note is not None:
            note_text = parsed_note.original_content

        event = NoteAuditEvent(
            action=action,
            request_id=request_id,
            note_fingerprint=note_fingerprint(note_text) if note_text is not None else None,
            sections=sections,
            metadata=dict(metadata or {}),
        )

        try:
            logger.info(json.dumps(asdict(event)))
        except TypeError:
            # Non-serializable metadata: keep the event, drop the metadata.
            event.metadata = {}
            logger.info(json.dumps(asdict(event)))

        return event


audit_service = AuditService()
