# pharmsearch/domain/query.py
from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field

from pharmsearch.domain.entities import DeliveryChannel, EntityKind, MedicineType
from pharmsearch.domain.localization import DEFAULT_LANGUAGE

SHORT_CODE_PAT = re.compile(r"^\d{7}$")
CLASSIFICATION_PAT = re.compile(r"^[A-Za-z]\d{2}[A-Za-z]{0,2}\d{0,2}$")


class QueryShape(str, Enum):
    NUMERIC_7_DIGIT = "numeric_7_digit"
    CLASSIFICATION_CODE = "classification_code"
    FREE_TEXT = "free_text"


def classify_query(text: str) -> QueryShape:
    """Advisory only: changes how the package and classification searchers match."""
    q = (text or "").strip()
    if SHORT_CODE_PAT.match(q):
        return QueryShape.NUMERIC_7_DIGIT
    if CLASSIFICATION_PAT.match(q):
        return QueryShape.CLASSIFICATION_CODE
    return QueryShape.FREE_TEXT


class RelationAxis(str, Enum):
    SUBSTANCE_ROOT = "substance_root"
    GENERIC_PRODUCT = "generic_product"
    BRANDED_PRODUCT = "branded_product"
    CLASSIFICATION = "classification"
    MANUFACTURER = "manufacturer"
    THERAPEUTIC_GROUP = "therapeutic_group"
    RAW_SUBSTANCE = "raw_substance"


# row field each axis filters on
AXIS_FIELD: Dict[RelationAxis, str] = {
    RelationAxis.SUBSTANCE_ROOT: "substance_root_code",
    RelationAxis.GENERIC_PRODUCT: "generic_product_code",
    RelationAxis.BRANDED_PRODUCT: "branded_product_code",
    RelationAxis.CLASSIFICATION: "classification_code",
    RelationAxis.MANUFACTURER: "manufacturer_code",
    RelationAxis.THERAPEUTIC_GROUP: "therapeutic_group_code",
    RelationAxis.RAW_SUBSTANCE: "raw_substance_codes",
}


class RelationshipFilters(BaseModel):
    """Exact-match parent codes, one per relationship axis."""
    substance_root: str | None = None
    generic_product: str | None = None
    branded_product: str | None = None
    classification: str | None = None
    manufacturer: str | None = None
    therapeutic_group: str | None = None
    raw_substance: str | None = None

    def active(self) -> Dict[RelationAxis, str]:
        out: Dict[RelationAxis, str] = {}
        for axis in RelationAxis:
            v = getattr(self, axis.value)
            if v:
                out[axis] = v
        return out


class ExtendedFilters(BaseModel):
    form_codes: FrozenSet[str] = frozenset()
    route_codes: FrozenSet[str] = frozenset()
    reimbursement_categories: FrozenSet[str] = frozenset()
    price_min: Decimal | None = None
    price_max: Decimal | None = None
    reimbursable_only: bool = False
    enhanced_monitoring_only: bool = False
    prior_authorization_only: bool = False
    delivery_channel: DeliveryChannel | None = None
    medicine_type: MedicineType | None = None

    def is_active(self) -> bool:
        return bool(
            self.form_codes
            or self.route_codes
            or self.reimbursement_categories
            or self.price_min is not None
            or self.price_max is not None
            or self.reimbursable_only
            or self.enhanced_monitoring_only
            or self.prior_authorization_only
            or self.delivery_channel is not None
            or self.medicine_type is not None
        )


class SearchQuery(BaseModel):
    text: str = ""
    lang: str = DEFAULT_LANGUAGE
    kinds: Optional[List[EntityKind]] = None
    relations: RelationshipFilters = Field(default_factory=RelationshipFilters)
    extended: ExtendedFilters = Field(default_factory=ExtendedFilters)
    limit: int = 20
    offset: int = 0

    @property
    def normalized_text(self) -> str:
        return (self.text or "").strip().casefold()

    def has_filters(self) -> bool:
        return bool(self.relations.active()) or self.extended.is_active()

    def wants(self, kind: EntityKind) -> bool:
        return self.kinds is None or kind in self.kinds
