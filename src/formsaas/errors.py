"""Failures raised by the form engine and its collaborators.

The request layer maps each class to one outcome: inline re-render for
``ValidationError``, 403 for ``AccessDenied``, 404 for ``NotFound`` and a
generic 500 for ``StorageFailure``.
"""
from __future__ import annotations


class FormsError(Exception):
    pass


class ValidationError(FormsError):
    def __init__(self, messages: str | list[str]) -> None:
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class AccessDenied(FormsError):
    def __init__(self, message: str = "Access refused") -> None:
        super().__init__(message)


class NotFound(FormsError):
    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class StorageFailure(FormsError):
    pass
