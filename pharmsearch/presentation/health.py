# pharmsearch/presentation/health.py
from fastapi import APIRouter, Depends
from pharmsearch.container import get_cache, get_index

router = APIRouter()

@router.get("/healthz")
async def healthz():
    return {"ok": True}

@router.get("/readyz")
async def readyz(index = Depends(get_index), cache = Depends(get_cache)):
    checks = {}; ok = True
    # Entity index
    try:
        checks["index"] = bool(await index.ping())
        ok = ok and checks["index"]
    except Exception as e:
        checks["index"] = False; checks["index_error"] = str(e); ok = False
    # Redis (only when the read-through cache is enabled)
    if cache is None:
        checks["cache"] = "disabled"
    else:
        try:
            pong = await cache.ping()
            checks["cache"] = bool(pong); ok = ok and bool(pong)
        except Exception as e:
            checks["cache"] = False; checks["cache_error"] = str(e); ok = False
    return {"ok": ok, **checks}
