"""Authorization predicate for recording visibility."""

import logging
from typing import Iterable, Optional

from ..config import RecorderConfig
from ..models.recording import Identity

logger = logging.getLogger(__name__)


class AccessPolicy:
    """Decides who is an admin. Row-level policies on the server stay authoritative."""

    def __init__(self, admin_emails: Iterable[str] = (), allow_anonymous: bool = False):
        self.admin_emails = frozenset(email.strip().lower() for email in admin_emails if email)
        self.allow_anonymous = allow_anonymous

    @classmethod
    def from_config(cls, config: RecorderConfig) -> "AccessPolicy":
        return cls(
            admin_emails=config.get_admin_emails(),
            allow_anonymous=bool(config.get('access.allow_anonymous', False)),
        )

    def is_admin(self, identity: Optional[Identity]) -> bool:
        if identity is None or not identity.email:
            return False
        return identity.email.strip().lower() in self.admin_emails

    def role_label(self, identity: Optional[Identity]) -> str:
        return "Admin" if self.is_admin(identity) else "User"

    def list_title(self, identity: Optional[Identity]) -> str:
        return "All Recordings" if self.is_admin(identity) else "My Recordings"
