from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from seed_categories import DEFAULT_CATEGORIES, seed
from spreadmarket.models.entities import Category


def test_seed_is_idempotent(db):
    factory = sessionmaker(bind=db.get_bind(), expire_on_commit=False)

    assert seed(factory) == len(DEFAULT_CATEGORIES)
    assert seed(factory) == 0

    assert db.scalar(select(func.count()).select_from(Category)) == len(DEFAULT_CATEGORIES)
    slugs = set(db.scalars(select(Category.slug)))
    assert {"financial-models", "kpi-dashboards", "sales-crm"} <= slugs


def test_seed_updates_existing_category(db, make_category):
    make_category(name="Old name", slug="financial-models", description="old")
    factory = sessionmaker(bind=db.get_bind(), expire_on_commit=False)

    assert seed(factory) == len(DEFAULT_CATEGORIES) - 1

    db.expire_all()
    category = db.scalar(select(Category).where(Category.slug == "financial-models"))
    assert category.name == "Financial Models"
