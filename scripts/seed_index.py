# /scripts/seed_index.py
"""
Load a JSON fixture of index rows into the MongoDB entity collections.

Dev tooling only: production collections are written by the sync pipeline.

    python scripts/seed_index.py tests/fixtures/index_rows.json
"""
from __future__ import annotations
import argparse, asyncio, json, sys
import datetime as dt
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from pharmsearch.domain.entities import IndexedEntityRow
from pharmsearch.infra.repo.mongo_index import MongoEntityIndex


def to_doc(row: IndexedEntityRow) -> dict:
    doc = row.model_dump(mode="json", exclude={"kind"})
    # numbers stay numbers so $gte/$lte work on price
    doc["price"] = float(row.price) if row.price is not None else None
    doc["synced_at"] = dt.datetime.now(dt.timezone.utc)
    return doc


async def upsert_rows(index: MongoEntityIndex, rows: list[IndexedEntityRow]) -> int:
    n = 0
    for row in rows:
        await index.collection(row.kind).update_one(
            {"code": row.code}, {"$set": to_doc(row)}, upsert=True,
        )
        n += 1
    return n


async def _run(path: Path) -> int:
    rows = [IndexedEntityRow(**d) for d in json.loads(path.read_text(encoding="utf-8"))]
    index = MongoEntityIndex()
    await index.ensure_indexes()
    n = await upsert_rows(index, rows)
    print(f"upserted {n} rows from {path}")
    return 0


def main():
    ap = argparse.ArgumentParser(description="Seed the entity index collections from a JSON fixture.")
    ap.add_argument("path", type=Path)
    args = ap.parse_args()
    return asyncio.run(_run(args.path))

if __name__ == "__main__":
    sys.exit(main())
