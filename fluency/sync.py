"""Item synchronization: merge freshly generated items into an existing pool."""

from fluency.models import Item


def sync_items(items: list[Item], generated: list[Item]) -> tuple[list[Item], dict]:
    """Append generated items whose id is not in the pool yet.

    Existing items keep their memory state. Returns (new pool, stats dict).
    """
    stats = {"new": 0, "unchanged": 0}
    existing_ids = {item.id for item in items}
    merged = list(items)
    for item in generated:
        if item.id in existing_ids:
            stats["unchanged"] += 1
            continue
        existing_ids.add(item.id)
        merged.append(item)
        stats["new"] += 1
    return merged, stats
