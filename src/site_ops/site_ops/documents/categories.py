"""Upload rules per document category."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet

from ..core.enums import DocumentCategory

MB = 1024 * 1024

_OFFICE = frozenset({"pdf", "doc", "docx", "xls", "xlsx", "hwp"})
_IMAGES = frozenset({"jpg", "jpeg", "png", "gif", "webp"})


@dataclass(frozen=True)
class CategoryConfig:
    category: DocumentCategory
    label: str
    extensions: FrozenSet[str]
    max_size: int = 10 * MB
    requires_approval: bool = False
    default_metadata: Dict[str, object] = field(default_factory=dict)


CATEGORIES: Dict[DocumentCategory, CategoryConfig] = {
    c.category: c
    for c in (
        CategoryConfig(DocumentCategory.SHARED, "Shared documents", _OFFICE | _IMAGES),
        CategoryConfig(DocumentCategory.MARKUP, "Drawing markups", _IMAGES | {"pdf"}, max_size=20 * MB),
        CategoryConfig(
            DocumentCategory.REQUIRED,
            "Required submissions",
            _OFFICE | _IMAGES,
            requires_approval=True,
        ),
        CategoryConfig(
            DocumentCategory.INVOICE,
            "Invoices",
            frozenset({"pdf", "xls", "xlsx", "jpg", "jpeg", "png"}),
            requires_approval=True,
            default_metadata={"invoice_type": "invoice", "currency": "KRW"},
        ),
        CategoryConfig(DocumentCategory.PHOTO_GRID, "Photo grid reports", frozenset({"pdf"}), max_size=20 * MB),
        CategoryConfig(DocumentCategory.PERSONAL, "Personal documents", _OFFICE | _IMAGES),
        CategoryConfig(DocumentCategory.CERTIFICATE, "Certificates", frozenset({"pdf"})),
        CategoryConfig(
            DocumentCategory.BLUEPRINT,
            "Drawings",
            frozenset({"pdf", "dwg", "dxf"}) | _IMAGES,
            max_size=50 * MB,
        ),
        CategoryConfig(
            DocumentCategory.SAFETY,
            "Safety documents",
            _OFFICE | _IMAGES,
            default_metadata={"safety_level": "general"},
        ),
        CategoryConfig(DocumentCategory.REPORT, "Reports", _OFFICE),
        CategoryConfig(DocumentCategory.OTHER, "Other", _OFFICE | _IMAGES | {"zip", "txt"}),
    )
}


def category_config(category: DocumentCategory) -> CategoryConfig:
    return CATEGORIES[category]
