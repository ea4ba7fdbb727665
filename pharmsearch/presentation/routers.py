# pharmsearch/presentation/routers.py
from __future__ import annotations

import os
import logging
from decimal import Decimal
from typing import FrozenSet, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from pharmsearch.container import get_search_use_case, get_suggest_use_case
from pharmsearch.domain.entities import DeliveryChannel, EntityKind, MedicineType, parse_kinds
from pharmsearch.domain.errors import InvalidParamsError, SearchBackendError, SearchError
from pharmsearch.domain.localization import DEFAULT_LANGUAGE, is_supported_language
from pharmsearch.domain.query import ExtendedFilters, RelationshipFilters, SearchQuery
from pharmsearch.presentation.schemas import (
    ErrorEnvelope, SearchResponseSchema, SuggestionItem, to_response,
)

DEFAULT_LIMIT = int(os.getenv("SEARCH_DEFAULT_LIMIT", "20"))
MAX_LIMIT     = int(os.getenv("SEARCH_MAX_LIMIT", "100"))

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")


def _resolve_lang(lang: Optional[str]) -> str:
    # unknown tags fall back to the default rather than failing the call
    return lang if is_supported_language(lang) else DEFAULT_LANGUAGE


def _code_set(raw: Optional[str]) -> FrozenSet[str]:
    if not raw:
        return frozenset()
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


def _kinds(raw: Optional[str]) -> Optional[List[EntityKind]]:
    try:
        return parse_kinds(raw)
    except ValueError as e:
        raise InvalidParamsError(str(e), {"valid_types": [k.value for k in EntityKind]}) from None


# ── SEARCH ────────────────────────────────────────────────────────
@router.get(
    "/search",
    response_model=SearchResponseSchema,
    responses={400: {"model": ErrorEnvelope}, 500: {"model": ErrorEnvelope}},
)
async def search(
    q: str = Query("", description="Free text, code, short code or classification code"),
    lang: Optional[str] = Query(None, description="en | nl | fr | de"),
    types: Optional[str] = Query(None, description="Comma-separated entity kinds"),
    limit: int = Query(DEFAULT_LIMIT),
    offset: int = Query(0),
    # relationship filters
    substance_root: Optional[str] = None,
    generic_product: Optional[str] = None,
    branded_product: Optional[str] = None,
    classification: Optional[str] = None,
    manufacturer: Optional[str] = None,
    therapeutic_group: Optional[str] = None,
    raw_substance: Optional[str] = None,
    # extended filters
    forms: Optional[str] = Query(None, description="Comma-separated form codes (OR)"),
    routes: Optional[str] = Query(None, description="Comma-separated route codes (OR)"),
    reimbursement_categories: Optional[str] = Query(None, description="Comma-separated categories (OR)"),
    price_min: Optional[Decimal] = None,
    price_max: Optional[Decimal] = None,
    reimbursable_only: bool = False,
    enhanced_monitoring_only: bool = False,
    prior_authorization_only: bool = False,
    delivery_channel: Optional[DeliveryChannel] = None,
    medicine_type: Optional[MedicineType] = None,
    uc = Depends(get_search_use_case),
):
    lang_ = _resolve_lang(lang)
    query = SearchQuery(
        text=q.strip(),
        lang=lang_,
        kinds=_kinds(types),
        relations=RelationshipFilters(
            substance_root=substance_root,
            generic_product=generic_product,
            branded_product=branded_product,
            classification=classification,
            manufacturer=manufacturer,
            therapeutic_group=therapeutic_group,
            raw_substance=raw_substance,
        ),
        extended=ExtendedFilters(
            form_codes=_code_set(forms),
            route_codes=_code_set(routes),
            reimbursement_categories=_code_set(reimbursement_categories),
            price_min=price_min,
            price_max=price_max,
            reimbursable_only=reimbursable_only,
            enhanced_monitoring_only=enhanced_monitoring_only,
            prior_authorization_only=prior_authorization_only,
            delivery_channel=delivery_channel,
            medicine_type=medicine_type,
        ),
        limit=min(limit, MAX_LIMIT),
        offset=offset,
    )
    try:
        res = await uc.execute(query)
    except SearchError:
        raise
    except Exception as e:
        logger.exception("search failed q=%r", q)
        raise SearchBackendError("An unexpected error occurred") from e
    return to_response(res, lang_)


# ── SUGGEST ───────────────────────────────────────────────────────
@router.get("/search/suggest", response_model=List[SuggestionItem])
async def suggest(
    q: str = Query(""),
    lang: Optional[str] = None,
    limit: int = Query(5),
    uc = Depends(get_suggest_use_case),
):
    try:
        return await uc.run(q.strip(), lang=_resolve_lang(lang), limit=limit)
    except SearchError:
        raise
    except Exception as e:
        logger.exception("suggest failed q=%r", q)
        raise SearchBackendError("An unexpected error occurred") from e


# ── ERROR ENVELOPE ────────────────────────────────────────────────
def _envelope(err: SearchError) -> JSONResponse:
    return JSONResponse(
        status_code=err.http_status,
        content=jsonable_encoder({"success": False, "error": err.to_dict()}),
    )


async def _search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return _envelope(exc)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # malformed decimal / boolean / enum query parameters
    errors = [
        {"param": ".".join(str(p) for p in e.get("loc", ())[1:]), "msg": e.get("msg")}
        for e in exc.errors()
    ]
    return _envelope(InvalidParamsError("Invalid request parameters", {"errors": errors}))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SearchError, _search_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
