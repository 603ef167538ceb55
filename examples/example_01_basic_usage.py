"""Example 01: Basic Usage - Categories and Links.

This example demonstrates the fundamental operations:
- Opening a Backend over a SQLite document store
- Creating categories and links through the services
- Querying with filters, sort orders and an item range
- Reading the Content-Range value of a page
- Deleting a category together with its links
"""

import asyncio

from linkshelf import Backend, LinkshelfConfig, QueryOptions


async def run() -> None:
    config = LinkshelfConfig(storage_uri="sqlite:///:memory:")

    async with await Backend.open(config) as backend:
        # Step 1: Create a category and a few links in it
        work_id = await backend.categories.create(
            {"title": "Work", "positionIdx": "1"}, owner_id=1
        )
        print(f"\n✓ Created category {work_id}")

        for title, href in [
            ("Issue tracker", "https://issues.example.com"),
            ("Docs", "https://docs.example.com"),
            ("CI", "https://ci.example.com"),
        ]:
            link_id = await backend.links.create(
                {"title": title, "href": href, "categoryId": work_id}, owner_id=1
            )
            print(f"  - link {link_id}: {title}")

        # Step 2: Query the links of the category, sorted by title, first page of two
        options = QueryOptions(sort_by=["+title"], range_start=0, range_end=1)
        page = await backend.links.select({"categoryId": str(work_id)}, options)
        print("\nFirst page:")
        for link in page:
            print(f"  - {link.title} ({link.href})")
        print(f"Content-Range: {page.content_range(options)}")

        # Step 3: The second page is short, so the total becomes known
        options = QueryOptions(sort_by=["+title"], range_start=2, range_end=3)
        page = await backend.links.select({"categoryId": str(work_id)}, options)
        print(f"Content-Range: {page.content_range(options)}")

        # Step 4: Identifiers only
        ids = await backend.links.select({}, QueryOptions(id_only=True))
        print(f"\nLink ids: {[link.id for link in ids]}")

        # Step 5: Deleting the category deletes its links first
        await backend.categories.delete(work_id)
        remaining = await backend.links.select()
        print(f"\n✓ Category deleted, {len(remaining)} links left")


def main():
    """Run the basic usage example."""
    print("=" * 80)
    print("LINKSHELF BASIC USAGE EXAMPLE")
    print("=" * 80)
    asyncio.run(run())


if __name__ == "__main__":
    main()
