"""
Authorized-user store backed by a small JSON file.

Layout: {"authorized_users": [123, 456]}. The admin id (from config) is always
authorized and never stored. Load and save failures are logged; the in-memory
list stays usable.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

from shared.logging import get_logger

logger = get_logger(__name__)


class AuthorizedUserStore:
    def __init__(self, path: Union[str, Path], admin_id: Optional[str] = None) -> None:
        self.path = Path(path)
        self.admin_id = str(admin_id) if admin_id else None
        self._users: list[int] = []
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            self.save()
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self._users = [int(u) for u in data.get("authorized_users", [])]
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.error("users.load_failed", path=str(self.path), error=str(e))

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps({"authorized_users": self._users}, indent=2), encoding="utf-8"
            )
        except OSError as e:
            logger.error("users.save_failed", path=str(self.path), error=str(e))

    def is_authorized(self, user_id: Any) -> bool:
        if user_id is None or str(user_id) == "":
            return False
        if self.admin_id and str(user_id) == self.admin_id:
            return True
        return any(str(u) == str(user_id) for u in self._users)

    def add_user(self, user_id: Any) -> bool:
        """Store a user id; False if it was already present. Raises ValueError for non-numeric ids."""
        if any(str(u) == str(user_id) for u in self._users):
            return False
        self._users.append(int(user_id))
        self.save()
        logger.info("users.added", user_id=str(user_id))
        return True

    def remove_user(self, user_id: Any) -> bool:
        before = len(self._users)
        self._users = [u for u in self._users if str(u) != str(user_id)]
        if len(self._users) == before:
            return False
        self.save()
        logger.info("users.removed", user_id=str(user_id))
        return True

    def list_users(self) -> list[int]:
        return list(self._users)
