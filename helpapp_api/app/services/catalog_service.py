"""
Business logic for the service catalog.

Administrators define service types (e.g. "Plumbing"); providers offer
services under a type.  The catalog listing is public and read-only.
"""

import logging
import sqlite3
from typing import Dict, List

from ..core.db import Database, is_foreign_key_violation, is_unique_violation
from ..core.errors import AccountNotFound, DuplicateServiceType, InternalError, ServiceTypeNotFound
from ..schemas.service import (
    ServiceCreate,
    ServiceRead,
    ServiceTypeCreate,
    ServiceTypeRead,
    ServiceTypeWithServices,
)

logger = logging.getLogger(__name__)

SERVICE_SELECT = """
    SELECT s.id, s.title, s.description, s.price, s.provider_id, s.service_type_id, s.created_at,
           u.name AS provider_name, u.email AS provider_email
    FROM services s
    JOIN users u ON u.id = s.provider_id
"""


def _row_to_service(row: sqlite3.Row) -> ServiceRead:
    return ServiceRead(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        price=row["price"],
        provider_id=row["provider_id"],
        service_type_id=row["service_type_id"],
        created_at=row["created_at"],
        provider={"id": row["provider_id"], "name": row["provider_name"], "email": row["provider_email"]},
    )


class CatalogService:
    """Service for service types and the services providers offer."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def list_all(self) -> List[ServiceTypeWithServices]:
        """Return every service type with its services and their providers."""
        services_by_type: Dict[int, List[ServiceRead]] = {}
        for row in self.db.fetch_all(SERVICE_SELECT + " ORDER BY s.id"):
            services_by_type.setdefault(row["service_type_id"], []).append(_row_to_service(row))
        types = self.db.fetch_all(
            "SELECT id, name, description, created_at FROM service_types ORDER BY name"
        )
        return [
            ServiceTypeWithServices(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                created_at=row["created_at"],
                services=services_by_type.get(row["id"], []),
            )
            for row in types
        ]

    async def create_service_type(self, data: ServiceTypeCreate) -> ServiceTypeRead:
        """Create a service type.  Names are unique; the admin check is done by the gate."""
        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO service_types (name, description) VALUES (?, ?)",
                    (data.name, data.description),
                )
                type_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            if not is_unique_violation(exc):
                logger.error("Service type insert failed: %s", exc)
                raise InternalError("Could not store service type")
            raise DuplicateServiceType(f"Service type with name '{data.name}' already exists.")
        logger.info("Service type %s created (id=%s)", data.name, type_id)
        row = self.db.fetch_one(
            "SELECT id, name, description, created_at FROM service_types WHERE id = ?",
            (type_id,),
        )
        return ServiceTypeRead.model_validate(dict(row))

    async def create_service(self, provider_id: int, data: ServiceCreate) -> ServiceRead:
        """Offer a new service owned by ``provider_id``."""
        service_type = self.db.fetch_one(
            "SELECT id FROM service_types WHERE id = ?",
            (data.service_type_id,),
        )
        if not service_type:
            raise ServiceTypeNotFound()
        try:
            with self.db.transaction() as cursor:
                cursor.execute(
                    """
                    INSERT INTO services (title, description, price, provider_id, service_type_id)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (data.title, data.description, data.price, provider_id, data.service_type_id),
                )
                service_id = cursor.lastrowid
        except sqlite3.IntegrityError as exc:
            if is_foreign_key_violation(exc):
                logger.warning("Offering rejected: provider %s no longer exists", provider_id)
                raise AccountNotFound()
            logger.error("Service insert for provider %s failed: %s", provider_id, exc)
            raise InternalError("Could not store service")
        logger.info("Provider %s offers service %s (id=%s)", provider_id, data.title, service_id)
        row = self.db.fetch_one(SERVICE_SELECT + " WHERE s.id = ?", (service_id,))
        return _row_to_service(row)
