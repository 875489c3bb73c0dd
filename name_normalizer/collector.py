from __future__ import annotations

import logging
from typing import Any, Optional

from .core.identity.models import ItemRef, PersonRecord
from .item_store import ItemFilter, ItemStore
from .models import CancelCheck, InputError, ProgressCallback, check_cancelled, emit_progress, parse_year

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 200
COLLECTING = "collecting"


def display_author(creators: list[dict]) -> str:
    """Short author line for provenance: first creator, "et al." when there are more."""
    named = [c for c in creators if (c.get("lastName") or "").strip()]
    if not named:
        return ""
    first = named[0]
    label = " ".join(part for part in ((first.get("firstName") or "").strip(), first["lastName"].strip()) if part)
    if len(named) > 1:
        label += " et al."
    return label


def item_ref(record: Any, creators: list[dict]) -> ItemRef:
    return ItemRef(
        id=record.id,
        key=str(getattr(record, "key", "") or ""),
        title=str(getattr(record, "title", "") or ""),
        year=parse_year(getattr(record, "date", None)),
        display_author=display_author(creators),
        item_type=str(getattr(record, "item_type", "") or ""),
    )


def fetch_person_records(
    store: ItemStore,
    item_filter: Optional[ItemFilter] = None,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_progress: Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck] = None,
) -> list[PersonRecord]:
    """
    Aggregate every creator of the matching items into PersonRecords.

    Items are fetched in sequential batches of batch_size. Each creator with
    a last name counts as one occurrence of its exact (first, last) spelling;
    creators without a last name are skipped, and so are items whose
    creator list is malformed.

    Raises:
        CancellationSignal: should_cancel asked to stop between batches
    """
    item_ids = store.search(item_filter)
    total = len(item_ids)
    batch_size = max(1, batch_size)
    by_spelling: dict[tuple[str, str], PersonRecord] = {}
    skipped = 0
    skipped_items = 0
    emit_progress(on_progress, COLLECTING, 0, total)

    for start in range(0, total, batch_size):
        check_cancelled(should_cancel, COLLECTING)
        batch = item_ids[start:start + batch_size]
        for record in store.get_records(batch):
            try:
                creators = record.get_creators()
            except InputError as exc:
                logger.warning("Skipping item %s: %s", getattr(record, "id", "?"), exc)
                skipped_items += 1
                continue
            ref = item_ref(record, creators)
            for creator in creators:
                first = (creator.get("firstName") or "").strip()
                last = (creator.get("lastName") or "").strip()
                if not last:
                    skipped += 1
                    continue
                person = by_spelling.get((first, last))
                if person is None:
                    by_spelling[(first, last)] = PersonRecord(first, last, 1, [ref])
                    continue
                person.occurrence_count += 1
                if all(existing.dedupe_key != ref.dedupe_key for existing in person.evidence):
                    person.evidence.append(ref)
        emit_progress(on_progress, COLLECTING, min(start + batch_size, total), total)

    if skipped:
        logger.debug("Skipped %d creator(s) without a last name", skipped)
    logger.info(
        "Collected %d distinct name(s) from %d item(s), %d item(s) skipped",
        len(by_spelling),
        total,
        skipped_items,
    )
    return list(by_spelling.values())
