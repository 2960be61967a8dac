import re
from typing import Optional

from app.models.inspection import BarcodeType

# 17 caracteres alfanuméricos sin I, O ni Q
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$", re.IGNORECASE)
VIN_IN_TEXT = re.compile(r"\b[A-HJ-NPR-Z0-9]{17}\b", re.IGNORECASE)

COMPLIANCE_PATTERNS = [
    re.compile(r"^[A-Z]{2,3}\d{6,8}$", re.IGNORECASE),
    re.compile(r"^COMP\d+", re.IGNORECASE),
    re.compile(r"^PLATE\d+", re.IGNORECASE),
]


def is_valid_vin(code: str) -> bool:
    return bool(VIN_PATTERN.match(code or ""))


def is_compliance_plate(code: str) -> bool:
    return any(pattern.match(code or "") for pattern in COMPLIANCE_PATTERNS)


def classify_barcode(code: str) -> BarcodeType:
    code = (code or "").strip()
    if is_valid_vin(code):
        return BarcodeType.VIN
    if is_compliance_plate(code):
        return BarcodeType.COMPLIANCE
    return BarcodeType.OTHER


def find_vin(text: str) -> Optional[str]:
    """Busca un VIN dentro del texto reconocido por OCR."""
    match = VIN_IN_TEXT.search(text or "")
    return match.group(0).upper() if match else None
