from __future__ import annotations

import logging

from ..domain.relay_models import Sender, StoreRecord
from ..errors import UpstreamError
from ..infrastructure.record_store import RecordStore


LOG = logging.getLogger("relay.store")

SESSION_LINK_FIELD = "interview_session"
SENDER_FIELD = "Sender"
TEXT_FIELD = "Message_text"


class TranscriptLogger:
    """Appends one message record per chat turn, linked to its session."""

    def __init__(self, store: RecordStore, table: str = "interview_messages") -> None:
        self._store = store
        self._table = table

    def _create(self, session_id: str, sender: Sender | str, text: str) -> StoreRecord:
        LOG.debug("message_logging", extra={"session_id": session_id, "sender": sender, "chars": len(text)})
        try:
            record = self._store.create(
                self._table,
                {
                    SESSION_LINK_FIELD: [session_id],
                    SENDER_FIELD: sender,
                    TEXT_FIELD: text,
                },
            )
        except UpstreamError:
            LOG.exception("message_log_failed", extra={"session_id": session_id, "sender": sender})
            raise
        LOG.info("message_logged", extra={"session_id": session_id, "sender": sender, "record_id": record.id})
        return record

    def append(self, session_id: str, sender: Sender | str, text: str) -> None:
        self._create(session_id, sender, text)

    def append_record(self, session_id: str, sender: Sender | str, text: str) -> str:
        """Like :meth:`append` but return the new record id."""
        return self._create(session_id, sender, text).id
