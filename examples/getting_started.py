"""
Getting started with d1driver.

Runs the four CRUD helpers against a local DuckDB database that speaks
the same prepare/bind/all/run contract as a Workers D1 binding.
"""

import asyncio
import logging

import d1driver
from d1driver import D1Driver, LocalD1Database, CURRENT_TIMESTAMP


async def main():
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    db = LocalD1Database(":memory:")
    await db.exec("""
        CREATE TABLE blog (
            id INTEGER PRIMARY KEY,
            title VARCHAR,
            body VARCHAR,
            createdAt TIMESTAMP,
            deletedAt TIMESTAMP
        )
    """)

    print("1. Creating posts")
    await d1driver.create(db, "blog", {"id": 1, "title": "Hello", "body": "First!", "createdAt": CURRENT_TIMESTAMP})
    await d1driver.create(db, "blog", {"id": 2, "title": "Drafts", "body": "...", "createdAt": "CURRENT_TIMESTAMP"})

    print("\n2. Reading posts")
    result = await d1driver.get(db, "blog", fields="id, title, createdAt")
    for row in result.results:
        print(f"   {row}")

    print("\n3. Updating a post")
    await d1driver.update(db, "blog", {"title": "Hello, world"}, {"id": 1})

    print("\n4. Soft removing a post")
    await d1driver.remove(db, "blog", {"id": 2}, soft_remove=True)

    live = await d1driver.get(db, "blog", {"deletedAt": None}, "id, title")
    print(f"   Live posts: {live.results}")

    print("\n5. Rejected write")
    rejected = await d1driver.create(db, "blog", {})
    print(f"   success={rejected.success} error={rejected.error}")

    print("\n6. Driver with query logging and metrics")
    driver = D1Driver(db, log_queries=True, strict=True, enable_metrics=True)
    await driver.get("blog", {"id": 1})
    await driver.remove("blog", {"id": 2})
    print(f"   Operations: {driver.get_metrics()['operations']}")

    db.close()


if __name__ == "__main__":
    asyncio.run(main())
