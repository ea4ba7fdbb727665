# /scripts/cli_search_check.py
from __future__ import annotations
import argparse, sys, time
import requests

def print_step(title):
    print(f"\n=== {title} ===")

def do_search(base, q, lang, types=None, limit=10, extra=None):
    print_step("SEARCH /v1/search")
    params = {"q": q, "lang": lang, "limit": limit}
    if types:
        params["types"] = types
    params.update(extra or {})
    t0 = time.perf_counter()
    r = requests.get(f"{base}/v1/search", params=params, timeout=30)
    dt = (time.perf_counter() - t0) * 1000
    print(f"HTTP {r.status_code} in {dt:.0f} ms")
    data = r.json()
    if not r.ok:
        err = data.get("error") or {}
        print(f"error: {err.get('code')} {err.get('message')}")
        return data
    print(f"total={data.get('total_count')} has_more={data['pagination']['has_more']} incomplete={data.get('incomplete')}")
    print("facets:", {k: v for k, v in (data.get("facets") or {}).items() if v})
    for i, it in enumerate(data.get("results", []), 1):
        print(f"{i:2d}. [{it['entity_kind']}] {it['name']} code={it['code']}  "
              f"[{it['matched_field']}|{it['score']:.3f}]")
    return data

def do_suggest(base, q, lang):
    print_step("SUGGEST /v1/search/suggest")
    r = requests.get(f"{base}/v1/search/suggest", params={"q": q, "lang": lang}, timeout=30)
    print(f"HTTP {r.status_code}")
    items = r.json() if r.ok else []
    for it in items:
        print(f" - [{it['entity_kind']}] {it['name']}")
    return items

def main():
    ap = argparse.ArgumentParser(description="PharmSearch smoke check (search + suggest).")
    ap.add_argument("--base", default="http://127.0.0.1:8000", help="Base URL of the FastAPI server")
    ap.add_argument("--q", required=True, help="Query text, code, short code or classification code")
    ap.add_argument("--lang", default="en")
    ap.add_argument("--types", help="Comma-separated entity kinds")
    ap.add_argument("--limit", type=int, default=10)
    ap.add_argument("--manufacturer", help="Manufacturer code filter")
    args = ap.parse_args()

    extra = {"manufacturer": args.manufacturer} if args.manufacturer else {}
    search_res = do_search(args.base, args.q, args.lang, args.types, args.limit, extra)
    suggest_res = do_suggest(args.base, args.q, args.lang)

    print_step("SUMMARY")
    ok = bool(search_res.get("success"))
    print("search :", "OK" if ok else "FAILED", f"({len(search_res.get('results') or [])} results)")
    print("suggest:", f"{len(suggest_res)} suggestions")
    return 0 if ok else 1

if __name__ == "__main__":
    sys.exit(main())
