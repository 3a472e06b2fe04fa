"""Mock utilities for Firestore."""

import unittest.mock
from typing import Any, Optional

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference


class MockFieldFilter:
    def __init__(self, field_path: str, op_string: str, value: Any) -> None:
        self.field_path = field_path
        self.op_string = op_string
        self.value = value


class MockTransaction:
    """Transaction that applies every write as soon as it is issued."""

    def __init__(self) -> None:
        self.updates: list[tuple[Any, Any]] = []

    def update(self, ref: Any, data: dict[str, Any]) -> None:
        self.updates.append((ref, data))
        ref.update(data)

    def set(self, ref: Any, data: dict[str, Any], merge: bool = False) -> None:
        self.updates.append((ref, data))
        ref.set(data, merge=merge)


class MockFirestoreBuilder:
    """Builder to modularize mockfirestore and firebase_admin patching."""

    @staticmethod
    def patch_db_read() -> None:
        """Apply monkeypatches to mockfirestore to support FieldFilter and transactions."""

        def collection_where(
            self: Any,
            field_path: Optional[str] = None,
            op_string: Optional[str] = None,
            value: Any = None,
            filter: Any = None,
        ) -> Any:
            if filter:
                return self._where(filter.field_path, filter.op_string, filter.value)
            return self._where(field_path, op_string, value)

        if not hasattr(CollectionReference, "_where"):
            CollectionReference._where = CollectionReference.where
            CollectionReference.where = collection_where

        def query_where(
            self: Any,
            field_path: Optional[str] = None,
            op_string: Optional[str] = None,
            value: Any = None,
            filter: Any = None,
        ) -> Any:
            if filter:
                return self._where(filter.field_path, filter.op_string, filter.value)
            return self._where(field_path, op_string, value)

        if not hasattr(Query, "_where"):
            Query._where = Query.where
            Query.where = query_where

        # Patch DocumentReference.get to handle transaction argument
        if not hasattr(DocumentReference, "_orig_get"):
            DocumentReference._orig_get = DocumentReference.get

            def doc_ref_get(self: Any, transaction: Any = None) -> Any:
                """Handle transaction argument in get."""
                return self._orig_get()

            DocumentReference.get = doc_ref_get

    @staticmethod
    def firestore_module(db: MockFirestore) -> unittest.mock.MagicMock:
        """Return a stand-in for ``firebase_admin.firestore`` bound to ``db``."""
        db.transaction = unittest.mock.MagicMock(side_effect=MockTransaction)

        module = unittest.mock.MagicMock()
        module.client.return_value = db
        module.transactional = lambda f: f
        module.FieldFilter = MockFieldFilter
        module.SERVER_TIMESTAMP = "2023-01-01"
        return module


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore."""
    MockFirestoreBuilder.patch_db_read()
