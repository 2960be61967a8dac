from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from firebase_admin import auth as firebase_auth
import os
import secrets
import time
from datetime import datetime, timezone

from app.config.database import USERS, db, ensure_indexes
from app.config.firebase_init import initialize_firebase
from app.config.settings import ADMIN_EMAIL, CORS_ORIGINS
from app.errors import InspectionError, error_body
from app.routes import admin, auth, compliance, inspections, ocr

app = FastAPI(
    title="Vehicle Pre-Delivery Inspections",
    description="API para gestionar inspecciones de pre-entrega de vehículos, usuarios y auditoría.",
    version="1.0.0"
)

# Middleware para medir el tiempo de las solicitudes
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    print(f"Tiempo de procesamiento para {request.url}: {process_time:.2f} segundos")
    response.headers["X-Process-Time"] = str(process_time)
    return response

# Los errores de dominio llevan su propio código HTTP y el mensaje literal
@app.exception_handler(InspectionError)
async def inspection_error_handler(request: Request, exc: InspectionError):
    if exc.status_code >= 500:
        print(f"Error del almacén en {request.url}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Función para asegurar que el administrador exista en Firebase Authentication y en MongoDB
async def ensure_admin_user():
    try:
        print(f"Verificando si existe {ADMIN_EMAIL}...")
        user = firebase_auth.get_user_by_email(ADMIN_EMAIL)
        print("Usuario administrador ya existe:", user.email)
        if (user.custom_claims or {}).get("role") != "admin":
            firebase_auth.set_custom_user_claims(user.uid, {"role": "admin"})
            print("Asignado custom claim 'role: admin' al usuario")
    except firebase_auth.UserNotFoundError:
        print("Creando usuario administrador...")
        admin_password = secrets.token_urlsafe(16)
        user = firebase_auth.create_user(email=ADMIN_EMAIL, password=admin_password, email_verified=True)
        firebase_auth.set_custom_user_claims(user.uid, {"role": "admin"})
        print(f"Usuario administrador creado: {ADMIN_EMAIL}, contraseña generada: {admin_password}")

    if not await db[USERS].find_one({"email": ADMIN_EMAIL.lower()}):
        await db[USERS].insert_one({
            "uid": user.uid,
            "email": ADMIN_EMAIL.lower(),
            "name": "Administrator",
            "role": "admin",
            "isActive": True,
            "createdAt": datetime.now(timezone.utc),
        })

@app.on_event("startup")
async def startup_event():
    print("Ejecutando evento de startup...")
    initialize_firebase()
    await ensure_indexes()
    await ensure_admin_user()
    print("Evento de startup completado")

# Incluir las rutas de los diferentes módulos
app.include_router(auth.router, prefix="/api/auth", tags=["Autenticación"])
app.include_router(inspections.router, prefix="/api", tags=["Inspecciones"])
app.include_router(admin.router, prefix="/api/admin", tags=["Administración"])
app.include_router(compliance.router, prefix="/api", tags=["Cumplimiento"])
app.include_router(ocr.router, prefix="/api", tags=["OCR"])

@app.get("/")
def read_root():
    return {"message": "Vehicle PDI inspections API running"}

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
