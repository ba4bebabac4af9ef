"""Access to the recording_logs table."""

import logging
from typing import List, Optional

from supabase import Client

from ..exceptions import NotAuthenticatedError, RepositoryError
from ..models.recording import Identity, RecordingLog
from .access import AccessPolicy

logger = logging.getLogger(__name__)


class RecordingsRepository:
    """Reads and writes recording records.

    The query filter mirrors the server's row-level policies: admins read
    every row, everyone else only rows they own.
    """

    def __init__(self, client: Client, policy: AccessPolicy, table: str = "recording_logs"):
        self.client = client
        self.policy = policy
        self.table = table

    def insert(self, log: RecordingLog) -> RecordingLog:
        try:
            response = self.client.table(self.table).insert(log.to_insert_row()).execute()
        except Exception as e:
            logger.error(f"Error inserting recording: {e}")
            raise RepositoryError(str(e)) from e

        rows = getattr(response, "data", None) or []
        logger.info(f"Recording saved for candidate '{log.candidate_name}'")
        return RecordingLog(**rows[0]) if rows else log

    def list_for(self, identity: Optional[Identity]) -> List[RecordingLog]:
        """Recordings visible to ``identity``, newest first."""
        if identity is None and not self.policy.allow_anonymous:
            raise NotAuthenticatedError()

        query = self.client.table(self.table).select("*")
        if identity is not None and not self.policy.is_admin(identity):
            query = query.eq("user_id", identity.id)

        try:
            response = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.error(f"Error fetching recordings: {e}")
            raise RepositoryError(str(e)) from e

        rows = getattr(response, "data", None) or []
        logger.debug(f"Fetched {len(rows)} recordings")
        return [RecordingLog(**row) for row in rows]
