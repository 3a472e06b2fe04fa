"""Shared document and response shapes."""

from typing import Any, TypedDict


class _FirestoreDocumentBase(TypedDict):
    id: str
    createdAt: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Fields every stored document carries.

    Timestamps are written as Firestore server timestamps.
    """

    updatedAt: Any


class APIResponse(TypedDict):
    """Body of every JSON response, successful or not."""

    success: bool
    message: str
    # An event, a list of events, a report, or None
    data: Any
