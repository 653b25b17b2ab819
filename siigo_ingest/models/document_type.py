from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

"""Document type vocabulary.

Two separate notions live here and must not be mixed:

- ``DocumentTypeCode``: row-level classification derived from the content of
  the "Factura proveedor" cell (``FC-00123`` -> FC). Rows whose code matches
  no known prefix are skipped by the normalizer.
- ``FileTypeHint``: file-level guess taken from the uploaded file name, used
  only for display and diagnostics. It has an UNKNOWN bucket; classification
  never does.
"""

__all__ = [
    "DocumentTypeCode",
    "FileTypeHint",
    "ALL_DOCUMENT_TYPES",
    "DOCUMENT_TYPE_NAMES",
    "MONTH_NAMES",
    "classify_document_code",
    "detect_file_type_hint",
]


class DocumentTypeCode(Enum):
    """Accounting document categories handled by the pipeline."""
    FC = "FC"  # Factura de Compra (purchase invoice)
    ND = "ND"  # Nota Débito (debit note)
    DS = "DS"  # Documento Soporte (support document)
    RP = "RP"  # Recibo de Pago (payment receipt)

    @property
    def display_name(self) -> str:
        return DOCUMENT_TYPE_NAMES[self]


class FileTypeHint(Enum):
    FC = "FC"
    ND = "ND"
    DS = "DS"
    RP = "RP"
    UNKNOWN = "unknown"

    def as_document_type(self) -> DocumentTypeCode | None:
        if self is FileTypeHint.UNKNOWN:
            return None
        return DocumentTypeCode(self.value)


ALL_DOCUMENT_TYPES: frozenset[DocumentTypeCode] = frozenset(DocumentTypeCode)

DOCUMENT_TYPE_NAMES: dict[DocumentTypeCode, str] = {
    DocumentTypeCode.FC: "Factura de Compra",
    DocumentTypeCode.ND: "Nota Débito",
    DocumentTypeCode.DS: "Documento Soporte",
    DocumentTypeCode.RP: "Recibo de Pago",
}

MONTH_NAMES: tuple[str, ...] = (
    "Ene", "Feb", "Mar", "Abr", "May", "Jun",
    "Jul", "Ago", "Sep", "Oct", "Nov", "Dic",
)

# Classification order matters when a code carries several tokens.
_CLASSIFICATION_ORDER = (
    DocumentTypeCode.FC,
    DocumentTypeCode.ND,
    DocumentTypeCode.DS,
    DocumentTypeCode.RP,
)


def classify_document_code(
    code: str | None, known: Iterable[DocumentTypeCode] = ALL_DOCUMENT_TYPES
) -> DocumentTypeCode | None:
    """Classify a SIIGO document code by its ``PREFIX-`` token.

    The token may open the code (``FC-00123``) or appear anywhere in it
    (``xx-FC-55``). Returns None when no known prefix is present.
    """
    if not code:
        return None
    normalized = code.upper().strip()
    allowed = set(known)
    for doc_type in _CLASSIFICATION_ORDER:
        if doc_type not in allowed:
            continue
        if f"{doc_type.value}-" in normalized:
            return doc_type
    return None


_FILE_NAME_PATTERNS: tuple[tuple[re.Pattern[str], FileTypeHint], ...] = (
    (re.compile(r"(^|[\s\-_.])(fc|facturas?[\s\-_]*compra)([\s\-_.]|$)", re.I), FileTypeHint.FC),
    (re.compile(r"(^|[\s\-_.])(nd|notas?[\s\-_]*d[eé]bito)", re.I), FileTypeHint.ND),
    (re.compile(r"(^|[\s\-_.])(ds|documentos?[\s\-_]*soporte)", re.I), FileTypeHint.DS),
    (re.compile(r"(^|[\s\-_.])(rp|recibos?[\s\-_]*pago)", re.I), FileTypeHint.RP),
)

_FILE_NAME_KEYWORDS: tuple[tuple[re.Pattern[str], FileTypeHint], ...] = (
    (re.compile(r"factura|compra", re.I), FileTypeHint.FC),
    (re.compile(r"nota.*d[eé]bito|débito", re.I), FileTypeHint.ND),
    (re.compile(r"documento.*soporte|soporte", re.I), FileTypeHint.DS),
    (re.compile(r"recibo.*pago|pago", re.I), FileTypeHint.RP),
)


def detect_file_type_hint(file_name: str | None) -> FileTypeHint:
    """Guess the document type an uploaded file holds from its name."""
    if not file_name:
        return FileTypeHint.UNKNOWN
    name = file_name.lower().strip()
    for pattern, hint in _FILE_NAME_PATTERNS:
        if pattern.search(name):
            return hint
    for pattern, hint in _FILE_NAME_KEYWORDS:
        if pattern.search(name):
            return hint
    return FileTypeHint.UNKNOWN
