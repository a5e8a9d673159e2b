"""Firestore access for match documents.

Every write to a match is described as an ordered list of patch operations
and applied inside a Firestore transaction: the match is read, the operations
are planned against that fresh snapshot and written back in the same commit.
Nothing ever fetches a match, edits it in memory and writes the whole
document back outside of a transaction.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Union, cast

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPICallError

from kickoff.core.constants import MATCHES_COLLECTION
from kickoff.errors import NotFoundError, StoreFailureError

from .models import Match

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass
class SetField:
    """Set a top-level field to a value."""

    path: str
    value: Any


@dataclass
class IncrementField:
    """Add ``amount`` (which may be negative) to a numeric field."""

    path: str
    amount: int


@dataclass
class AppendToArray:
    """Append items to an array field, creating it if missing."""

    path: str
    items: list[Any] = field(default_factory=list)


@dataclass
class RemoveArrayElements:
    """Remove every array element whose ``key`` is one of ``values``."""

    path: str
    key: str
    values: list[Any] = field(default_factory=list)


@dataclass
class UpdateArrayElements:
    """Merge ``changes`` into every array element whose ``key`` equals ``value``."""

    path: str
    key: str
    value: Any
    changes: dict[str, Any] = field(default_factory=dict)


PatchOp = Union[
    SetField, IncrementField, AppendToArray, RemoveArrayElements, UpdateArrayElements
]
Planner = Callable[[Match], Sequence[PatchOp]]


def apply_ops(
    data: dict[str, Any], ops: Iterable[PatchOp]
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Apply ``ops`` in order to a copy of ``data``.

    Returns the patched document and the Firestore update payload. A field
    that is only ever incremented is written with ``firestore.Increment``;
    array fields are written as the array computed from the snapshot, which
    is safe because callers always run inside the transaction that read it.
    """
    result = copy.deepcopy(data)
    updates: dict[str, Any] = {}
    increments: dict[str, int] = {}

    for op in ops:
        if isinstance(op, SetField):
            result[op.path] = op.value
            updates[op.path] = op.value
            increments.pop(op.path, None)
        elif isinstance(op, IncrementField):
            result[op.path] = (result.get(op.path) or 0) + op.amount
            if op.path in updates and op.path not in increments:
                updates[op.path] = result[op.path]
            else:
                increments[op.path] = increments.get(op.path, 0) + op.amount
                updates[op.path] = firestore.Increment(increments[op.path])
        elif isinstance(op, AppendToArray):
            items = list(result.get(op.path) or [])
            items.extend(copy.deepcopy(op.items))
            result[op.path] = items
            updates[op.path] = items
        elif isinstance(op, RemoveArrayElements):
            items = [
                item
                for item in result.get(op.path) or []
                if item.get(op.key) not in op.values
            ]
            result[op.path] = items
            updates[op.path] = items
        elif isinstance(op, UpdateArrayElements):
            items = [
                {**item, **op.changes} if item.get(op.key) == op.value else item
                for item in result.get(op.path) or []
            ]
            result[op.path] = items
            updates[op.path] = items
        else:
            raise TypeError(f"Unsupported patch operation: {op!r}")

    return result, updates


def _to_match(snapshot: DocumentSnapshot) -> Match:
    data = cast(Match, snapshot.to_dict() or {})
    data["id"] = snapshot.id
    return data


def _to_document(snapshot: DocumentSnapshot) -> dict[str, Any]:
    return {**(snapshot.to_dict() or {}), "id": snapshot.id}


# Firestore reports a transaction that ran out of retries under contention
# as a ValueError chained to the final ``Aborted``.
_TRANSACTION_FAILURES = (GoogleAPICallError, ValueError)


class MatchStore:
    """Reads and atomically patches match documents in Firestore."""

    def __init__(self, db: Client) -> None:
        """Wrap a Firestore client."""
        self.db = db

    def _ref(self, match_id: str) -> DocumentReference:
        return self.db.collection(MATCHES_COLLECTION).document(match_id)

    def get(self, match_id: str) -> Optional[Match]:
        """Fetch a single match by its ID."""
        try:
            snapshot = cast("DocumentSnapshot", self._ref(match_id).get())
        except GoogleAPICallError as e:
            logger.error(f"Error fetching match {match_id}: {e}")
            raise StoreFailureError(f"Failed to fetch match {match_id}.") from e
        if not snapshot.exists:
            return None
        return _to_match(snapshot)

    def _stream(
        self,
        collection: str,
        filters: Optional[Iterable[tuple[str, str, Any]]],
        order_by: Optional[str],
        descending: bool,
    ) -> list[DocumentSnapshot]:
        query: Any = self.db.collection(collection)
        for field_path, op_string, value in filters or []:
            query = query.where(
                filter=firestore.FieldFilter(field_path, op_string, value)
            )
        if order_by:
            direction = (
                firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)
        try:
            return list(query.stream())
        except GoogleAPICallError as e:
            logger.error(f"Error querying {collection}: {e}")
            raise StoreFailureError(f"Failed to query {collection}.") from e

    def query(
        self,
        filters: Optional[Iterable[tuple[str, str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Match]:
        """Fetch matches by ``(field, op, value)`` filters, optionally sorted."""
        snapshots = self._stream(MATCHES_COLLECTION, filters, order_by, descending)
        return [_to_match(doc) for doc in snapshots]

    def list_documents(
        self,
        collection: str,
        filters: Optional[Iterable[tuple[str, str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Fetch related documents (payments, venues) the way ``query`` does."""
        snapshots = self._stream(collection, filters, order_by, descending)
        return [_to_document(doc) for doc in snapshots]

    def get_document(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Fetch one related document, or None if it does not exist."""
        return self.get_documents(collection, [doc_id]).get(doc_id)

    def get_documents(self, collection: str, doc_ids: Iterable[str]) -> dict[str, Any]:
        """Fetch related documents (users, venues) keyed by ID."""
        docs: dict[str, Any] = {}
        for doc_id in dict.fromkeys(doc_ids):
            if not doc_id:
                continue
            try:
                snapshot = self.db.collection(collection).document(doc_id).get()
            except GoogleAPICallError as e:
                logger.error(f"Error fetching {collection}/{doc_id}: {e}")
                raise StoreFailureError(f"Failed to fetch {collection}.") from e
            if snapshot.exists:
                docs[doc_id] = {**(snapshot.to_dict() or {}), "id": doc_id}
        return docs

    def create(self, data: dict[str, Any]) -> Match:
        """Create a new match document and return it as stored."""
        ref = self.db.collection(MATCHES_COLLECTION).document()
        try:
            ref.set(data)
        except GoogleAPICallError as e:
            logger.error(f"Error creating match: {e}")
            raise StoreFailureError("Failed to create match.") from e
        return self.get(ref.id) or cast(Match, {**data, "id": ref.id})

    def patch(self, match_id: str, ops: Sequence[PatchOp]) -> Match:
        """Apply ``ops`` to one match as a single atomic write."""
        return self.mutate(match_id, lambda _match: ops)

    def mutate(self, match_id: str, planner: Planner) -> Match:
        """Read a match, plan ops against it and write them in one transaction.

        ``planner`` receives the fresh snapshot and returns the ops to apply.
        It may raise an ``AppError`` to abort without writing anything.
        """
        transaction = self.db.transaction()
        run_in_transaction = firestore.transactional(MatchStore._apply_mutation)
        try:
            return cast(
                Match, run_in_transaction(transaction, self._ref(match_id), planner)
            )
        except _TRANSACTION_FAILURES as e:
            logger.error(f"Error updating match {match_id}: {e}")
            raise StoreFailureError(f"Failed to update match {match_id}.") from e

    @staticmethod
    def _apply_mutation(
        transaction: Transaction, match_ref: DocumentReference, planner: Planner
    ) -> Match:
        """Transaction body shared by ``patch`` and ``mutate``."""
        snapshot = cast("DocumentSnapshot", match_ref.get(transaction=transaction))
        if not snapshot.exists:
            raise NotFoundError("Match not found.")
        match = _to_match(snapshot)

        ops = list(planner(match))
        if not ops:
            return match

        updated, updates = apply_ops(cast(dict, match), ops)
        transaction.update(match_ref, updates)
        return cast(Match, updated)

    def transaction(self) -> MatchTransaction:
        """Start a multi-document unit of work."""
        return MatchTransaction(self)


class MatchTransaction:
    """Buffers match patches and document writes and commits them together."""

    def __init__(self, store: MatchStore) -> None:
        """Bind the transaction to a store."""
        self._store = store
        self._mutations: list[tuple[str, Planner]] = []
        self._writes: list[tuple[str, DocumentReference, dict[str, Any]]] = []

    def patch(self, match_id: str, ops: Sequence[PatchOp]) -> MatchTransaction:
        """Queue fixed ops for a match."""
        return self.mutate(match_id, lambda _match: ops)

    def mutate(self, match_id: str, planner: Planner) -> MatchTransaction:
        """Queue ops planned against the match as read inside the transaction."""
        self._mutations.append((match_id, planner))
        return self

    def create(self, collection: str, data: dict[str, Any]) -> str:
        """Queue a new document and return its ID."""
        ref = self._store.db.collection(collection).document()
        self._writes.append(("create", ref, data))
        return str(ref.id)

    def update(
        self, collection: str, doc_id: str, data: dict[str, Any]
    ) -> MatchTransaction:
        """Queue an update of fields on an existing document."""
        ref = self._store.db.collection(collection).document(doc_id)
        self._writes.append(("update", ref, data))
        return self

    def commit(self) -> list[Match]:
        """Apply everything queued, or nothing."""
        transaction = self._store.db.transaction()
        run_in_transaction = firestore.transactional(MatchTransaction._commit_all)
        try:
            return cast(
                "list[Match]",
                run_in_transaction(
                    transaction, self._store, self._mutations, self._writes
                ),
            )
        except _TRANSACTION_FAILURES as e:
            logger.error(f"Error committing match transaction: {e}")
            raise StoreFailureError("Failed to commit transaction.") from e

    @staticmethod
    def _commit_all(
        transaction: Transaction,
        store: MatchStore,
        mutations: list[tuple[str, Planner]],
        writes: list[tuple[str, DocumentReference, dict[str, Any]]],
    ) -> list[Match]:
        """Transaction body: all reads first, then all writes."""
        loaded = []
        for match_id, planner in mutations:
            ref = store._ref(match_id)
            snapshot = cast("DocumentSnapshot", ref.get(transaction=transaction))
            if not snapshot.exists:
                raise NotFoundError("Match not found.")
            loaded.append((ref, _to_match(snapshot), planner))

        planned = [(ref, match, list(planner(match))) for ref, match, planner in loaded]

        results: list[Match] = []
        for ref, match, ops in planned:
            if not ops:
                results.append(match)
                continue
            updated, updates = apply_ops(cast(dict, match), ops)
            transaction.update(ref, updates)
            results.append(cast(Match, updated))

        for kind, ref, data in writes:
            if kind == "create":
                transaction.create(ref, data)
            else:
                transaction.update(ref, data)

        return results
