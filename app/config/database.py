from motor.motor_asyncio import AsyncIOMotorClient
from app.config.settings import MONGODB_URI, MONGODB_DB

# Configuración de la conexión a MongoDB con opciones de optimización
client = AsyncIOMotorClient(
    MONGODB_URI,
    maxPoolSize=10,  # Tamaño máximo del pool de conexiones
    minPoolSize=1,   # Tamaño mínimo del pool de conexiones
    connectTimeoutMS=5000,  # Tiempo de espera para la conexión
)
db = client[MONGODB_DB]

INSPECTIONS = "inspections"
USERS = "users"
AUDIT_LOGS = "audit_logs"

async def ensure_indexes():
    await db[INSPECTIONS].create_index("inspectionNumber", unique=True)
    await db[INSPECTIONS].create_index("inspectorEmail")
    await db[INSPECTIONS].create_index([("status", 1), ("inspectionDate", 1)])
    await db[USERS].create_index("email", unique=True)
    await db[USERS].create_index("phone", unique=True, sparse=True)
    await db[AUDIT_LOGS].create_index([("userId", 1), ("timestamp", -1)])
    await db[AUDIT_LOGS].create_index([("resourceType", 1), ("resourceId", 1), ("timestamp", -1)])
    await db[AUDIT_LOGS].create_index([("action", 1), ("timestamp", -1)])
