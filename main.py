# main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from konsul.infrastructure.api.routers import (
    catalog_router,
    clients_router,
    documents_router,
    integrations_router,
    profile_router,
    reports_router,
)
from konsul.infrastructure.persistence import models  # registra las tablas en Base.metadata
from konsul.infrastructure.persistence.database import Base, engine

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - [%(funcName)s] - %(message)s')

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="API de Kônsul Bills",
    description="Facturación, cotizaciones, gastos y reportes financieros para emprendedores en Panamá.",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reports_router.router)
app.include_router(clients_router.router)
app.include_router(documents_router.router)
app.include_router(integrations_router.router)
app.include_router(profile_router.router)
app.include_router(catalog_router.router)


@app.get("/", tags=["Health Check"])
def read_root():
    return {"status": "ok", "message": "Bienvenido a la API de Kônsul Bills"}
