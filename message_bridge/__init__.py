"""Message bridge package: typed envelopes between the core, the UI and the backend."""

from .bridge import MessageBridge
from . import topics
from .messages import MessageEnvelope

__all__ = ["MessageBridge", "MessageEnvelope", "topics"]
