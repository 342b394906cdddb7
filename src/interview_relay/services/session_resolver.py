"""Find-or-create lookup of the interview session for a stakeholder/project pair.

The lookup and the create are two independent store calls. Two first-contact
requests for the same pair can both miss and both create, leaving duplicate
sessions; the store enforces no uniqueness and this resolver does not retry.
"""

from __future__ import annotations

import logging

from ..domain.relay_models import SESSION_IN_PROGRESS
from ..errors import UpstreamError
from ..infrastructure.record_store import RecordStore


LOG = logging.getLogger("relay.store")

STAKEHOLDER_FIELD = "Stakeholder"
PROJECT_FIELD = "ProjectID"
STATUS_FIELD = "Session_Status"


class SessionResolver:
    def __init__(self, store: RecordStore, table: str = "interview_sessions") -> None:
        self._store = store
        self._table = table

    def resolve(self, stakeholder_id: str, project_id: str) -> str:
        """Return the id of the first matching session, creating one if none exists."""
        match = {STAKEHOLDER_FIELD: stakeholder_id, PROJECT_FIELD: project_id}
        try:
            records = self._store.select(self._table, match, max_records=1)
            if records:
                LOG.debug("session_reused", extra={"session_id": records[0].id})
                return records[0].id
            created = self._store.create(
                self._table,
                {
                    STAKEHOLDER_FIELD: stakeholder_id,
                    PROJECT_FIELD: project_id,
                    STATUS_FIELD: SESSION_IN_PROGRESS,
                },
            )
        except UpstreamError:
            LOG.exception("session_resolve_failed", extra={"stakeholder": stakeholder_id, "project": project_id})
            raise
        LOG.info("session_created", extra={"session_id": created.id, "project": project_id})
        return created.id
