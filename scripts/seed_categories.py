"""
Script para sembrar las categorias iniciales del marketplace.

Crea (o actualiza) las ocho categorias por defecto de SpreadMarket. Se
ejecuta una vez al preparar una base de datos nueva y despues de agregar
categorias a DEFAULT_CATEGORIES:

    python scripts/seed_categories.py

La base de datos se toma de la variable de entorno DATABASE_URL (la misma
que usa la app).

Nota sobre idempotencia:
Este script es SEGURO de ejecutar multiples veces. Cada categoria se busca
por su slug (columna unica): si existe se actualizan nombre y descripcion,
si no existe se crea. Nunca se duplican categorias.
"""

import logging

from sqlalchemy import select

from spreadmarket.database import SessionLocal, init_db
from spreadmarket.models.entities import Category

logger = logging.getLogger("seed_categories")

DEFAULT_CATEGORIES = [
    {
        "name": "Financial Models",
        "slug": "financial-models",
        "description": "Budgets, forecasts, investment calculators",
    },
    {
        "name": "KPI Dashboards",
        "slug": "kpi-dashboards",
        "description": "Performance tracking and business metrics",
    },
    {
        "name": "Market Research",
        "slug": "market-research",
        "description": "Industry analysis and competitive intelligence",
    },
    {
        "name": "Project Management",
        "slug": "project-management",
        "description": "Task tracking and resource planning",
    },
    {
        "name": "Sales & CRM",
        "slug": "sales-crm",
        "description": "Lead tracking and sales pipeline management",
    },
    {
        "name": "HR & Operations",
        "slug": "hr-operations",
        "description": "Employee management and operational templates",
    },
    {
        "name": "Data Analysis",
        "slug": "data-analysis",
        "description": "Statistical models and data visualization",
    },
    {
        "name": "Inventory Management",
        "slug": "inventory-management",
        "description": "Stock tracking and supply chain",
    },
]


def seed(session_factory=SessionLocal) -> int:
    """
    Inserta o actualiza DEFAULT_CATEGORIES (upsert por slug).

    Retorna:
        int: Numero de categorias creadas (las actualizadas no cuentan).
    """
    created = 0
    with session_factory() as db:
        for data in DEFAULT_CATEGORIES:
            category = db.scalar(select(Category).where(Category.slug == data["slug"]))
            if category is None:
                db.add(Category(**data))
                created += 1
            else:
                category.name = data["name"]
                category.description = data["description"]
        db.commit()
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    init_db()
    logger.info("Seeding categories...")
    count = seed()
    logger.info(f"Seeding completed! ({count} new categories)")
