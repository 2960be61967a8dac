from google.cloud import vision
from PIL import Image, ExifTags
import io
import re

def extract_text(image_content):
    """Reconoce el texto de una imagen (placa VIN, placa de cumplimiento) con Google Cloud Vision."""
    try:
        client = vision.ImageAnnotatorClient()
        image = vision.Image(content=image_content)
        response = client.text_detection(image=image)
        if response.error.message:
            raise Exception(response.error.message)
        annotations = response.text_annotations
        # La primera anotación contiene todo el texto
        text = annotations[0].description if annotations else ""
        text = re.sub(r"\s+", " ", text).strip()
        print(f"Texto detectado por OCR: {text}")
        return text
    except Exception as e:
        print(f"Error en el OCR de la imagen: {str(e)}")
        raise Exception(f"OCR extraction failed: {str(e)}")

def _gps_to_degrees(values, ref):
    degrees, minutes, seconds = (float(v) for v in values)
    result = degrees + minutes / 60 + seconds / 3600
    return -result if ref in ("S", "W") else result

def extract_photo_metadata(image_content, file_name="unknown", mime_type="application/octet-stream"):
    """Lee las dimensiones y los datos EXIF (cámara, fecha, GPS) de una foto."""
    metadata = {
        "fileName": file_name,
        "fileSize": len(image_content),
        "mimeType": mime_type,
    }
    try:
        image = Image.open(io.BytesIO(image_content))
    except Exception as e:
        print(f"No se pudo abrir la imagen {file_name}: {str(e)}")
        return metadata

    metadata["width"], metadata["height"] = image.size
    exif = image.getexif()
    if not exif:
        return metadata

    tags = {ExifTags.TAGS.get(tag, tag): value for tag, value in exif.items()}
    for exif_name, key in (("Make", "make"), ("Model", "model"), ("Software", "software"), ("Orientation", "orientation")):
        if tags.get(exif_name) is not None:
            metadata[key] = tags[exif_name]
    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
    date_time = exif_ifd.get(ExifTags.Base.DateTimeOriginal) or tags.get("DateTime")
    if date_time:
        metadata["dateTime"] = str(date_time)

    gps = exif.get_ifd(ExifTags.IFD.GPSInfo)
    try:
        if gps.get(2) and gps.get(4):
            metadata["latitude"] = _gps_to_degrees(gps[2], gps.get(1, "N"))
            metadata["longitude"] = _gps_to_degrees(gps[4], gps.get(3, "E"))
    except (TypeError, ValueError, ZeroDivisionError) as e:
        print(f"Datos GPS inválidos en {file_name}: {str(e)}")
    return metadata
