import dataclasses
import itertools
import threading


class ConversationStore:
    """In-memory conversations keyed by conversation id.

    Turns keep append order. ``history`` hands out copies of the turns, never the live
    objects. Once more than ``max_conversations`` exist, the ones touched least
    recently are dropped.
    """

    def __init__(self, max_conversations=200):
        self.max_conversations = max_conversations
        self._conversations = {}
        self._lock = threading.Lock()
        self._ticks = itertools.count()

    def __len__(self):
        with self._lock:
            return len(self._conversations)

    def __contains__(self, conversation_id):
        with self._lock:
            return conversation_id in self._conversations

    def append(self, conversation_id, *turns):
        with self._lock:
            state = self._conversations.setdefault(
                conversation_id, {"turns": [], "last_seen": next(self._ticks)}
            )
            state["turns"].extend(turns)
            state["last_seen"] = next(self._ticks)
            self._cleanup_unlocked()

    def history(self, conversation_id):
        with self._lock:
            state = self._conversations.get(conversation_id)
            return [dataclasses.replace(turn) for turn in state["turns"]] if state else []

    def clear(self, conversation_id):
        with self._lock:
            return self._conversations.pop(conversation_id, None) is not None

    def conversation_ids(self):
        with self._lock:
            return list(self._conversations)

    def _cleanup_unlocked(self):
        if len(self._conversations) <= self.max_conversations:
            return
        oldest = sorted(
            self._conversations.items(),
            key=lambda item: item[1]["last_seen"],
        )
        drop_count = len(self._conversations) - self.max_conversations
        for conversation_id, _ in oldest[:drop_count]:
            self._conversations.pop(conversation_id, None)
