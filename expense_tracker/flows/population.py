"""
Population of references.

A stored record holds bare ids in its ``*Id`` fields. Population swaps
each id for the referenced document, with one batched lookup per field
regardless of how many records are being populated.

A reference whose target no longer exists populates to None. User
documents never carry their password hash out of this module.
"""

from typing import Iterable, Optional

from expense_tracker.services.storage import DocumentStoreInterface, USERS

# Fields of a user document that are safe to expose
USER_SUMMARY_FIELDS = ("_id", "firstName", "lastName", "email")


def public_user(user: Optional[dict]) -> Optional[dict]:
    """A user document without its password hash."""
    if user is None:
        return None
    return {key: value for key, value in user.items() if key != "password"}


def project(document: Optional[dict], fields: Iterable[str]) -> Optional[dict]:
    if document is None:
        return None
    return {field: document[field] for field in fields if field in document}


async def populate(
    store: DocumentStoreInterface,
    records: list[dict],
    references: dict[str, str],
    projections: Optional[dict[str, Iterable[str]]] = None,
) -> list[dict]:
    """
    Replace reference ids with the referenced documents.

    Args:
        store: Document store to resolve ids against
        records: Records to populate (not modified)
        references: Field name -> collection it points into
        projections: Optional field name -> fields to keep on the
                     populated document

    Returns:
        New record dicts with the reference fields populated
    """
    projections = projections or {}
    populated = [dict(record) for record in records]

    for field, collection in references.items():
        ids = [
            record[field]
            for record in records
            if isinstance(record.get(field), str)
        ]
        found = await store.get_many_by_ids(collection, ids) if ids else {}

        for record in populated:
            if field not in record or not isinstance(record[field], str):
                continue
            target = found.get(record[field])
            if collection == USERS:
                target = public_user(target)
            if field in projections:
                target = project(target, projections[field])
            record[field] = target

    return populated


async def populate_one(
    store: DocumentStoreInterface,
    record: dict,
    references: dict[str, str],
    projections: Optional[dict[str, Iterable[str]]] = None,
) -> dict:
    """Populate a single record."""
    result = await populate(store, [record], references, projections)
    return result[0]
