"""
Session Stack - стек команд для каждого чата и кулдауны
"""

from .cooldown import CooldownRecord, CooldownTracker
from .frames import DelegationState, SessionFrame, SessionStack, SessionStore

__all__ = [
    "CooldownRecord",
    "CooldownTracker",
    "DelegationState",
    "SessionFrame",
    "SessionStack",
    "SessionStore",
]
