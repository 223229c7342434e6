#!/usr/bin/env python3
"""
Database initialization script for the POS kitchen backend.

This script handles:
- Database creation (for PostgreSQL)
- Running Alembic migrations
- Optional demo tenant + menu seeding

Usage:
    python scripts/init_db.py [--seed-data] [--check-only]
"""

import os
import sys
import argparse
import subprocess
from decimal import Decimal
from pathlib import Path
from urllib.parse import urlparse

# add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pos_api.core.config import settings
from pos_api.db.session import engine, session_scope
from sqlalchemy import create_engine, select, text
from sqlalchemy.exc import SQLAlchemyError
import logging

# configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEMO_CODE = "DEMO01"

# category -> items; variants carry absolute prices
DEMO_MENU = [
    {
        "category": "Rice",
        "icon": "rice",
        "items": [
            {
                "name": "Onigiri",
                "description": "Rice ball with a savoury filling",
                "price": "12.90",
                "variants": [("Regular", "12.90"), ("Large", "18.90")],
                "addons": [("Extra salmon", "3.00"), ("Nori wrap", "1.00")],
            },
        ],
    },
    {
        "category": "Soups",
        "icon": "soup",
        "items": [
            {
                "name": "Tom Yum Soup",
                "description": "Hot and sour soup with shrimp",
                "price": "9.50",
                "variants": [("Mild", "9.50"), ("Hot", "9.50")],
                "addons": [("Extra shrimp", "4.00")],
            },
        ],
    },
]


def create_database_if_not_exists():
    """create db if it doesn't exist (PostgreSQL only)."""
    database_url = settings.DATABASE_URL

    if not database_url.startswith("postgresql"):
        logger.info("Database URL is not PostgreSQL, skipping database creation")
        return True

    parsed = urlparse(database_url)
    database_name = parsed.path[1:]
    postgres_engine = create_engine(f"{parsed.scheme}://{parsed.netloc}/postgres", isolation_level="AUTOCOMMIT")
    try:
        with postgres_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :db_name"),
                {"db_name": database_name}
            ).fetchone()
            if exists is None:
                logger.info(f"Creating database: {database_name}")
                conn.execute(text(f'CREATE DATABASE "{database_name}"'))
            else:
                logger.info(f"Database {database_name} already exists")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Error creating database: {e}")
        return False
    finally:
        postgres_engine.dispose()


def run_migrations():
    """run Alembic migrations to create/update schema."""
    logger.info("Running Alembic migrations...")
    os.chdir(project_root)
    try:
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            capture_output=True,
            text=True,
            check=True
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"Error running migrations: {e}")
        logger.error(f"Migration error output: {e.stderr}")
        return False
    logger.info("Migrations completed successfully")
    logger.debug(f"Migration output: {result.stdout}")
    return True


def seed_demo_data():
    """seed one tenant with a branch, a device code and a small menu. Idempotent."""
    from pos_api.models import (
        Branch, Institution, InstitutionCode, MenuCategory, MenuItem, MenuItemAddon, MenuItemVariant,
    )

    try:
        with session_scope() as db:
            code = db.scalar(select(InstitutionCode).where(InstitutionCode.code == DEMO_CODE))
            if code:
                logger.info(f"Demo tenant already present (institution {code.institution_id})")
                return True

            institution = Institution(name="Demo Kitchen")
            branch = Branch(name="Main", address="Accra")
            institution.branches.append(branch)
            db.add(institution)
            db.flush()
            db.add(InstitutionCode(code=DEMO_CODE, institution_id=institution.id, branch_id=branch.id))

            for sort_order, category_data in enumerate(DEMO_MENU, 1):
                category = MenuCategory(
                    institution_id=institution.id,
                    name=category_data["category"],
                    icon=category_data["icon"],
                    sort_order=sort_order,
                )
                db.add(category)
                db.flush()
                for item_data in category_data["items"]:
                    item = MenuItem(
                        institution_id=institution.id,
                        category_id=category.id,
                        name=item_data["name"],
                        description=item_data["description"],
                        price=Decimal(item_data["price"]),
                    )
                    for i, (name, price) in enumerate(item_data["variants"]):
                        item.variants.append(MenuItemVariant(name=name, price=Decimal(price), sort_order=i, is_default=i == 0))
                    for i, (name, price) in enumerate(item_data["addons"]):
                        item.addons.append(MenuItemAddon(name=name, price=Decimal(price), sort_order=i))
                    db.add(item)
                    logger.info(f"Created menu item: {item_data['name']}")

            logger.info(f"Seeded demo tenant {institution.id} with device code {DEMO_CODE}")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Data seeding failed: {e}")
        return False


def check_database_connection():
    """test db connection."""
    try:
        logger.info("Testing database connection...")
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        logger.info("Database connection successful")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False


def main():
    parser = argparse.ArgumentParser(description="Initialize POS database")
    parser.add_argument(
        "--seed-data",
        action="store_true",
        help="Seed a demo tenant, device code and menu"
    )
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="Only check database connection, don't run migrations"
    )

    args = parser.parse_args()

    logger.info("Starting database initialization...")

    if not args.check_only and not create_database_if_not_exists():
        logger.error("Failed to create database")
        return False

    if not check_database_connection():
        return False

    if args.check_only:
        logger.info("Database check completed successfully")
        return True

    if not run_migrations():
        logger.error("Migration failed")
        return False

    if args.seed_data and not seed_demo_data():
        return False

    logger.info("Database initialization completed successfully!")
    return True


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
