"""
Pytest fixtures for the POS API tests.

DATABASE_URL points at an in-memory SQLite database before anything from
pos_api is imported, so the app's engine and SessionLocal use it as well.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["WEBHOOK_SECRET"] = "whsec_test"
os.environ["SECRET_KEY"] = "test-secret-key"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from pos_api import models
from pos_api.db.base import Base
from pos_api.db.session import SessionLocal, engine, get_db
from pos_api.main import app
from pos_api.services.menu import catalog


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    catalog.clear_cache()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def institution(db):
    """Create a tenant with one branch and an active device code."""
    institution = models.Institution(name="Test Kitchen")
    branch = models.Branch(name="Main", address="Osu, Accra")
    institution.branches.append(branch)
    db.add(institution)
    db.flush()
    db.add(models.InstitutionCode(code="TEST01", institution_id=institution.id, branch_id=branch.id))
    db.commit()
    return institution


@pytest.fixture
def branch(institution):
    return institution.branches[0]


@pytest.fixture
def menu(db, institution):
    """Onigiri (Regular 12.90 / Large 18.90) and Tom Yum Soup (Mild / Hot, 9.50)."""
    rice = models.MenuCategory(institution_id=institution.id, name="Rice Bowls", sort_order=2)
    soups = models.MenuCategory(institution_id=institution.id, name="Soups", slug="soups", sort_order=1)
    hidden = models.MenuCategory(institution_id=institution.id, name="Staff", sort_order=0, is_visible=False)
    db.add_all([rice, soups, hidden])
    db.flush()

    onigiri = models.MenuItem(
        institution_id=institution.id,
        category_id=rice.id,
        name="Onigiri",
        price=Decimal("12.90"),
    )
    onigiri.variants.append(models.MenuItemVariant(name="Regular", price=Decimal("12.90"), sort_order=0, is_default=True))
    onigiri.variants.append(models.MenuItemVariant(name="Large", price=Decimal("18.90"), sort_order=1))
    onigiri.addons.append(models.MenuItemAddon(name="Extra salmon", price=Decimal("3.00"), sort_order=0))
    onigiri.addons.append(models.MenuItemAddon(name="Sold out topping", price=Decimal("1.00"), sort_order=1, is_available=False))

    soup = models.MenuItem(
        institution_id=institution.id,
        category_id=soups.id,
        name="Tom Yum Soup",
        price=Decimal("9.50"),
    )
    soup.variants.append(models.MenuItemVariant(name="Mild", price=Decimal("9.50"), sort_order=0))
    soup.variants.append(models.MenuItemVariant(name="Hot", price=None, sort_order=1))

    unavailable = models.MenuItem(
        institution_id=institution.id,
        category_id=rice.id,
        name="Seasonal Bowl",
        price=Decimal("15.00"),
        is_available=False,
    )
    db.add_all([onigiri, soup, unavailable])
    db.commit()

    return {
        "onigiri": onigiri,
        "soup": soup,
        "unavailable": unavailable,
        "regular": onigiri.variants[0],
        "large": onigiri.variants[1],
        "salmon": onigiri.addons[0],
        "mild": soup.variants[0],
        "hot": soup.variants[1],
    }


def order_payload(institution, **overrides):
    payload = {
        "institution_id": institution.id,
        "order_type": "dine-in",
        "customer_name": "Ama Mensah",
        "customer_phone": "0241234567",
        "table_number": "4",
        "payment_method": "card",
        "items": [
            {"menu_item_id": None, "name": "Onigiri", "price": "18.90", "quantity": 2,
             "selected_variations": [{"variation_id": "var-1", "variation_name": "Variant",
                                      "option_id": 2, "option_name": "Large", "price_modifier": "6.00"}]},
            {"menu_item_id": None, "name": "Tom Yum Soup", "price": "9.50", "quantity": 1},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_order(institution):
    def _make(**overrides):
        return order_payload(institution, **overrides)
    return _make
