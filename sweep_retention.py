import asyncio
from app.services.compliance import sweep
from app.services.gateway import get_gateway

async def run_sweep():
    print("Iniciando limpieza de inspecciones completadas fuera de retención...")
    deleted = await sweep(get_gateway())
    print(f"Limpieza completada. Inspecciones eliminadas: {deleted}")
    return deleted

if __name__ == "__main__":
    asyncio.run(run_sweep())
