import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

ROLES = ("user", "assistant")


def utc_now():
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def new_id():
    return uuid.uuid4().hex


@dataclass
class Turn:
    """One message in a conversation.

    ``content`` of an assistant turn is overwritten while a reply streams in;
    ``partial`` stays set until the terminal emission arrives.
    """

    role: str
    content: str = ""
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=utc_now)
    partial: bool = False

    def to_dict(self):
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
            "partial": self.partial,
        }

    def as_message(self):
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class LanguageDescriptor:
    id: str
    name: str
    emoji: str
    culture: str

    def to_dict(self):
        return {"id": self.id, "name": self.name, "emoji": self.emoji, "culture": self.culture}


@dataclass
class ChatRequest:
    message: str
    history: List[dict] = field(default_factory=list)
    stream: bool = True
    language: str = "english"
    conversation_id: Optional[str] = None


@dataclass
class ChatResponse:
    message: str
    model: str
    conversation_id: str
    timestamp: str = field(default_factory=utc_now)
    partial: bool = False

    def to_dict(self):
        body = {
            "message": self.message,
            "timestamp": self.timestamp,
            "model": self.model,
            "conversationId": self.conversation_id,
        }
        if self.partial:
            body["isPartial"] = True
        return body
