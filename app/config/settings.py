# app/config/settings.py
import os
from dotenv import load_dotenv

load_dotenv()  # Cargar variables desde .env si existe

# Conexión a MongoDB
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "pdi_inspections")

# Credenciales de Firebase en base64 (JSON de la cuenta de servicio)
FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS")

# Administrador inicial que se asegura en el startup
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@pdi-inspections.com")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

# Días de retención de una inspección completada
DATA_RETENTION_DAYS = int(os.getenv("DATA_RETENTION_DAYS", 365))

# Segundos que dura el indicador de "guardado" de una sección
SAVED_INDICATOR_SECONDS = float(os.getenv("SAVED_INDICATOR_SECONDS", 3))

# Tiempo de vida (en segundos) del caché de tokens verificados
TOKEN_CACHE_TTL = int(os.getenv("TOKEN_CACHE_TTL", 300))

INSPECTION_LIST_LIMIT = int(os.getenv("INSPECTION_LIST_LIMIT", 100))

NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org/reverse")
