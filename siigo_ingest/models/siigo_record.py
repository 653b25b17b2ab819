from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .document_type import DocumentTypeCode

"""SiigoRecord: canonical representation of one accepted spreadsheet row."""

__all__ = [
    "SiigoRecord",
]


@dataclass(frozen=True)
class SiigoRecord:
    """One accepted row of a SIIGO export.

    ``month`` is zero based (January = 0) to index ``TypeTotals.by_month``
    directly; the persisted ``uploaded_files.month`` is one based.
    """
    document_code: str  # "Factura proveedor" cell, trimmed
    date: datetime  # "Fecha elaboración"
    value: float  # absolute amount, always > 0
    type: DocumentTypeCode
    month: int  # 0..11
    year: int
    identification: str | None = None  # NIT / cédula of the provider
    provider: str | None = None
    currency: str = "COP"

    @classmethod
    def build(
        cls,
        document_code: str,
        date: datetime,
        value: float,
        doc_type: DocumentTypeCode,
        *,
        identification: str | None = None,
        provider: str | None = None,
        currency: str = "COP",
    ) -> SiigoRecord:
        return cls(
            document_code=document_code,
            date=date,
            value=value,
            type=doc_type,
            month=date.month - 1,
            year=date.year,
            identification=identification,
            provider=provider,
            currency=currency,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "documentCode": self.document_code,
            "date": self.date.isoformat(),
            "identification": self.identification,
            "provider": self.provider,
            "value": self.value,
            "currency": self.currency,
            "type": self.type.value,
            "month": self.month,
            "year": self.year,
        }
