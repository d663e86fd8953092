from __future__ import annotations

from typing import List, Optional


class MetadataServiceError(Exception):
    """The backend answered with GraphQL errors or could not be queried at all."""

    def __init__(self, message: str, messages: Optional[List[str]] = None):
        super().__init__(message)
        self.messages = messages or [message]

    @classmethod
    def from_graphql(cls, errors: list) -> "MetadataServiceError":
        messages = []
        for entry in errors:
            if isinstance(entry, dict):
                messages.append(str(entry.get("message") or entry))
            else:
                messages.append(str(entry))
        return cls("\n".join(messages), messages)
