# create_admin.py
# Uso: python create_admin.py <email> <password> [nombre]
import asyncio
import sys
from datetime import datetime, timezone
from firebase_admin import auth

from app.config.database import USERS, db
from app.config.firebase_init import initialize_firebase

async def create_admin(email, password, name):
    email = email.lower()
    try:
        user = auth.get_user_by_email(email)
        print(f"El usuario {email} ya existe en Firebase (UID: {user.uid})")
    except auth.UserNotFoundError:
        user = auth.create_user(email=email, password=password, display_name=name, email_verified=True)
        print(f"Usuario {email} creado en Firebase (UID: {user.uid})")
    auth.set_custom_user_claims(user.uid, {"role": "admin"})
    print(f"Custom claim 'role: admin' asignado a {email}")

    await db[USERS].update_one(
        {"email": email},
        {"$set": {"uid": user.uid, "name": name, "role": "admin", "isActive": True},
         "$setOnInsert": {"createdAt": datetime.now(timezone.utc)}},
        upsert=True,
    )
    print("Administrador guardado en MongoDB.")

if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Uso: python create_admin.py <email> <password> [nombre]")
        sys.exit(1)
    initialize_firebase()
    asyncio.run(create_admin(sys.argv[1], sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else "Administrator"))
