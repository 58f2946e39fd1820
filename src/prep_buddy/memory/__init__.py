from prep_buddy.memory.bootstrapper import WelcomeBootstrapper
from prep_buddy.memory.models import Message, SessionRecord, TextPart
from prep_buddy.memory.session_store import (
    MessageValidationError,
    SessionBusyError,
    SessionPhase,
    SessionStatus,
    SessionStore,
)
from prep_buddy.memory.storage_bridge import StorageBridge
from prep_buddy.memory.store import KeyValueStore

__all__ = [
    "KeyValueStore",
    "Message",
    "MessageValidationError",
    "SessionBusyError",
    "SessionPhase",
    "SessionRecord",
    "SessionStatus",
    "SessionStore",
    "StorageBridge",
    "TextPart",
    "WelcomeBootstrapper",
]
