# config.py
import os

from dotenv import load_dotenv

load_dotenv()

# --- BASE DE DATOS ---
# En producción apunta a Postgres; en local basta con SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./konsul.db")

# --- API ---
API_PREFIX = "/api/v1"
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if origin.strip()
]

# --- CORREO (Resend) ---
RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_SENDER_NAME = "Kônsul Bills"
# Remitente de pruebas de Resend, se usa si no hay dominio verificado.
SANDBOX_SENDER_EMAIL = "onboarding@resend.dev"

# --- PAGOS (Stripe) ---
STRIPE_API_URL = "https://api.stripe.com/v1"
STRIPE_PRODUCT_ID = os.getenv("STRIPE_PRODUCT_ID", "prod_Tb5hEomvGYQEhh")
STRIPE_UNIT_AMOUNT = 1500  # 15.00 USD al mes
DEFAULT_PLAN = "Emprendedor Pro"

# --- DGI (consulta de RUC) ---
DGI_CONSULTA_RUC_URL = os.getenv("DGI_CONSULTA_RUC_URL", "https://etax2.mef.gob.pa/etax2web/ws/ConsultarRuc")

# --- IA (Gemini) ---
GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
GEMINI_MODEL_ID = "gemini-2.5-flash"
GEMINI_VISION_MODEL_ID = "gemini-2.5-flash-image"

# --- TIEMPOS DE ESPERA (segundos) ---
HTTP_TIMEOUT = 30
AI_TIMEOUT = 60

# --- CELERY ---
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
