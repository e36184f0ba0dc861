# ============================================================
# app.py — Point d'entrée du service Records
# ------------------------------------------------------------
# Crée la table des documents au démarrage et monte les routes.
# ============================================================
from fastapi import FastAPI
from sqlmodel import SQLModel

from .api import engine, router
from .models import Document

app = FastAPI(title="Records Service")


@app.on_event("startup")
def start():
    SQLModel.metadata.create_all(engine, tables=[Document.__table__])


app.include_router(router)
