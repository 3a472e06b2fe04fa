"""Constants and shared types for the openplay application."""

from .types import APIResponse, FirestoreDocument

__all__ = ["APIResponse", "FirestoreDocument"]
