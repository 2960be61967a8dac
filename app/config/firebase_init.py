import firebase_admin
from firebase_admin import credentials
import base64
import json
from app.config.settings import FIREBASE_CREDENTIALS

REQUIRED_FIELDS = ["type", "project_id", "private_key_id", "private_key", "client_email", "client_id"]

def initialize_firebase():
    if firebase_admin._apps:
        return firebase_admin.get_app()
    if not FIREBASE_CREDENTIALS:
        print("FIREBASE_CREDENTIALS no está configurado en las variables de entorno")
        raise Exception("FIREBASE_CREDENTIALS no está configurado")
    try:
        print("Decodificando FIREBASE_CREDENTIALS...")
        decoded_credentials = base64.b64decode(FIREBASE_CREDENTIALS).decode('utf-8')
        cred_data = json.loads(decoded_credentials)
        if not all(field in cred_data for field in REQUIRED_FIELDS):
            raise ValueError("Credenciales de Firebase incompletas o inválidas")
        cred = credentials.Certificate(cred_data)
        app = firebase_admin.initialize_app(cred, {'projectId': cred_data['project_id']})
        print("Firebase Admin SDK inicializado correctamente")
        return app
    except Exception as e:
        print(f"Error al inicializar Firebase Admin SDK: {str(e)}")
        raise Exception(f"Error al inicializar Firebase Admin SDK: {str(e)}")
