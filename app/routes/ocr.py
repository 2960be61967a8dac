from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from app.dependencies.auth import get_current_user
from app.image_analyzer import extract_photo_metadata, extract_text
from app.services.barcode import classify_barcode, find_vin
from app.services.geo import reverse_geocode

router = APIRouter()

MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_EXTENSIONS = ["jpg", "jpeg", "png", "heic", "webp"]

async def _read_image(image: UploadFile) -> bytes:
    file_extension = (image.filename or "").split(".")[-1].lower()
    if file_extension not in ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail=f"Only {', '.join(ALLOWED_EXTENSIONS)} images are allowed")
    content = await image.read()
    if not content:
        raise HTTPException(status_code=400, detail="Image data is required")
    if len(content) > MAX_IMAGE_SIZE:
        raise HTTPException(status_code=400, detail="Image cannot exceed 10MB")
    return content

@router.post("/ocr")
async def ocr_image(image: UploadFile = File(...), current_user: dict = Depends(get_current_user)):
    content = await _read_image(image)
    try:
        text = await run_in_threadpool(extract_text, content)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    vin = find_vin(text)
    return {
        "success": True,
        "text": text,
        "vin": vin,
        "barcodeType": classify_barcode(vin or text).value,
    }

@router.post("/photos/metadata")
async def photo_metadata(image: UploadFile = File(...), current_user: dict = Depends(get_current_user)):
    content = await _read_image(image)
    metadata = await run_in_threadpool(extract_photo_metadata, content, image.filename, image.content_type)
    print(f"Metadatos extraídos de {image.filename}: {metadata}")
    return {"success": True, "metadata": metadata}

@router.get("/geocode/reverse")
async def reverse_geocode_point(lat: float, lon: float, current_user: dict = Depends(get_current_user)):
    address = await run_in_threadpool(reverse_geocode, lat, lon)
    return {"success": address is not None, "address": address}
