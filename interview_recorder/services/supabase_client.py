"""Supabase client construction with a file-backed auth session store."""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from supabase import Client, create_client
from supabase.client import ClientOptions

from ..config import RecorderConfig

logger = logging.getLogger(__name__)


class FileSessionStorage:
    """Auth session storage persisted as JSON so sign-in survives between commands."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable auth session file {self.path}: {e}")
            return {}

    def _write(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(items, f)
        self.path.chmod(0o600)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if key in items:
            del items[key]
            self._write(items)


def create_supabase_client(config: RecorderConfig, session_file: Path) -> Client:
    """Build a Supabase client from configuration."""
    credentials = config.get_supabase_credentials()
    options = ClientOptions(
        storage=FileSessionStorage(session_file),
        persist_session=True,
        auto_refresh_token=False,
    )
    logger.info(f"Connecting to Supabase at {credentials['url']}")
    return create_client(credentials["url"], credentials["anon_key"], options=options)
