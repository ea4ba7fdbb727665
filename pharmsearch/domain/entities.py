# pharmsearch/domain/entities.py
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class EntityKind(str, Enum):
    SUBSTANCE_ROOT = "substance_root"
    GENERIC_PRODUCT = "generic_product"
    BRANDED_PRODUCT = "branded_product"
    PACKAGE = "package"
    MANUFACTURER = "manufacturer"
    THERAPEUTIC_GROUP = "therapeutic_group"
    RAW_SUBSTANCE = "raw_substance"
    CLASSIFICATION = "classification"

    @property
    def priority(self) -> int:
        """Tie-break rank: lower sorts first."""
        return KIND_PRIORITY[self]


# Declaration order == priority order; every kind must be listed here.
KIND_PRIORITY: Dict[EntityKind, int] = {
    EntityKind.SUBSTANCE_ROOT: 1,
    EntityKind.GENERIC_PRODUCT: 2,
    EntityKind.BRANDED_PRODUCT: 3,
    EntityKind.PACKAGE: 4,
    EntityKind.MANUFACTURER: 5,
    EntityKind.THERAPEUTIC_GROUP: 6,
    EntityKind.RAW_SUBSTANCE: 7,
    EntityKind.CLASSIFICATION: 8,
}


def parse_kinds(raw: str | None) -> Optional[List[EntityKind]]:
    """
    "generic_product, package" -> [GENERIC_PRODUCT, PACKAGE].
    Raises ValueError naming the first unknown kind.
    """
    if raw is None or not raw.strip():
        return None
    out: List[EntityKind] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            kind = EntityKind(part)
        except ValueError:
            raise ValueError(f"Invalid entity type: {part!r}") from None
        if kind not in out:
            out.append(kind)
    return out or None


class MatchedField(str, Enum):
    NAME = "name"
    CODE = "code"
    SHORT_CODE = "short_code"
    MANUFACTURER_NAME = "manufacturer_name"
    RAW_SUBSTANCE_NAME = "raw_substance_name"


class DeliveryChannel(str, Enum):
    PUBLIC = "P"
    HOSPITAL = "H"


class MedicineType(str, Enum):
    ALLOPATHIC = "ALLOPATHIC"
    HOMEOPATHIC = "HOMEOPATHIC"
    PHYTOTHERAPY = "PHYTOTHERAPY"
    ANTHROPOSOPHIC = "ANTHROPOSOPHIC"
    TRADITIONAL_HERBAL = "TRADITIONAL_HERBAL"


MultilingualText = Dict[str, str]


class IndexedEntityRow(BaseModel):
    """
    One denormalized row of an entity index collection.

    Rows are written by the offline sync pipeline; the search engine only reads
    them. (kind, code) is unique across all collections.
    """
    kind: EntityKind
    code: str
    name: MultilingualText = Field(default_factory=dict)

    # display
    alt_name: MultilingualText | None = None
    official_name: str | None = None
    parent_code: str | None = None
    parent_name: MultilingualText | None = None
    manufacturer_name: str | None = None
    pack_info: str | None = None
    price: Decimal | None = None
    reimbursable: bool | None = None
    short_code: str | None = None
    child_count: int | None = None
    enhanced_monitoring: bool | None = None

    # relationship axes (filter targets)
    substance_root_code: str | None = None
    generic_product_code: str | None = None
    branded_product_code: str | None = None
    classification_code: str | None = None
    manufacturer_code: str | None = None
    therapeutic_group_code: str | None = None
    raw_substance_codes: List[str] = Field(default_factory=list)

    # extended attributes (branded_product / package only)
    form_code: str | None = None
    form_name: MultilingualText | None = None
    route_code: str | None = None
    route_name: MultilingualText | None = None
    reimbursement_category: str | None = None
    prior_authorization: bool | None = None
    delivery_channel: DeliveryChannel | None = None
    medicine_type: MedicineType | None = None

    expires_on: dt.date | None = None

    @property
    def key(self) -> tuple[EntityKind, str]:
        return (self.kind, self.code)

    def is_expired(self, today: dt.date | None = None) -> bool:
        if self.expires_on is None:
            return False
        return self.expires_on < (today or dt.date.today())


class ScoredResult(BaseModel):
    row: IndexedEntityRow
    score: float
    matched_field: MatchedField
