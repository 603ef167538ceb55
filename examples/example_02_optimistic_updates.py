"""Example 02: Optimistic Updates and Error Handling.

This example demonstrates:
- Partial updates carrying the `updated` compare-and-swap token
- Stale writes rejected as client errors
- Retrying with fresh data
- Read-only fields ignored by updates
- Mapping ErrorKind values to HTTP status codes
"""

import asyncio

from linkshelf import Backend, ErrorKind, LinkshelfConfig, LinkshelfError


async def run() -> None:
    config = LinkshelfConfig(storage_uri="sqlite:///:memory:")

    async with await Backend.open(config) as backend:
        category_id = await backend.categories.create({"title": "Reading"})
        category = await backend.categories.get(category_id)
        token = category.updated
        print(f"\n✓ Created category {category_id} at {token}")

        # Section 1: First writer wins
        await backend.categories.update(category_id, {"title": "Reading list", "updated": token})
        print("✓ First update applied")

        # Section 2: Second writer still holds the old token
        try:
            await backend.categories.update(category_id, {"title": "Later", "updated": token})
        except LinkshelfError as e:
            assert e.kind is ErrorKind.CLIENT
            print(f"✗ Stale update rejected ({e.status_code}): {e.message}")

        # Section 3: Retry with fresh data
        fresh = await backend.categories.get(category_id)
        await backend.categories.update(category_id, {"title": "Later", "updated": fresh.updated})
        retried = await backend.categories.get(category_id)
        print(f"✓ Retry applied, title is now {retried.title!r}")

        # Section 4: Only read-only fields in the candidate means nothing to update
        fresh = await backend.categories.get(category_id)
        try:
            await backend.categories.update(
                category_id,
                {"ownerId": 42, "created": "1970-01-01T00:00:00.000Z", "updated": fresh.updated},
            )
        except LinkshelfError as e:
            print(f"✗ No-op update rejected ({e.status_code}): {e.message}")

        # Section 5: Missing entities are reported as None by get
        print(f"\nget(999) -> {await backend.categories.get(999)}")


def main():
    """Run the optimistic update example."""
    print("=" * 80)
    print("EXAMPLE 02: OPTIMISTIC UPDATES AND ERROR HANDLING")
    print("=" * 80)
    asyncio.run(run())


if __name__ == "__main__":
    main()
