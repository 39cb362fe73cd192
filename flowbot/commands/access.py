"""
Access policy - кто может запускать приватные команды
"""

from typing import Iterable, Optional


class AccessPolicy:
    """Privileged users are configured by Telegram user id"""

    def __init__(self, admin_user_ids: Iterable[int] = ()):
        self.admin_user_ids = frozenset(int(user_id) for user_id in admin_user_ids)

    def is_privileged(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self.admin_user_ids
