"""
Default data for a fresh installation: hospital warehouses, the controlled
medicine catalogue and one account per role.

Each collection is only seeded when it is empty, so running this twice is safe.
"""
import logging
from typing import Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from controlstock.exceptions import StoreIOError
from controlstock.models import Medicine, User, Warehouse
from controlstock.permission_config import ROLE_ADMINISTRATOR, ROLE_OPERATOR, ROLE_SUPERVISOR
from controlstock.utils.auth_internal import hash_password

logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    # (username, email, role, initial password)
    ("admin", "admin@stpaulhospital.org", ROLE_ADMINISTRATOR, "admin123"),
    ("supervisor", "supervisor@stpaulhospital.org", ROLE_SUPERVISOR, "supervisor123"),
    ("operator", "operator@stpaulhospital.org", ROLE_OPERATOR, "operator123"),
]

DEFAULT_WAREHOUSES = [
    ("Central Pharmacy", "Main hospital pharmacy"),
    ("Emergency Pharmacy", "Emergency department pharmacy"),
    ("Ambulance Kit No. 1", "Controlled medicines carried by ambulance 1"),
    ("Ambulance Kit No. 2", "Controlled medicines carried by ambulance 2"),
    ("Ambulance Kit No. 3", "Controlled medicines carried by ambulance 3"),
    ("Crash Cart - Surgery", "Emergency medicines for surgery"),
    ("Crash Cart - Gynecology", "Emergency medicines for gynecology"),
    ("Crash Cart - Medical-Surgical", "Emergency medicines for the medical-surgical ward"),
    ("Crash Cart - Pediatrics", "Emergency medicines for pediatrics"),
    ("Crash Cart - Intermediate Care", "Emergency medicines for intermediate care"),
    ("Crash Cart - Intensive Care", "Emergency medicines for intensive care"),
    ("Crash Cart - Emergency", "Emergency medicines for the emergency department"),
]

DEFAULT_MEDICINES = [
    # (name, low-stock threshold)
    ("ALPRAZOLAM 0.25MG TAB", 20),
    ("ALPRAZOLAM 0.5MG TAB", 20),
    ("CLONAZEPAM 0.5MG TAB", 15),
    ("CLONAZEPAM 2MG TAB", 15),
    ("CLONAZEPAM 2.5MG ORAL SOLUTION", 10),
    ("CLOZAPINE 25MG TAB", 15),
    ("CLOZAPINE 100MG TAB", 15),
    ("DIAZEPAM 10MG/2ML AMP", 25),
    ("PHENOBARBITAL 40MG AMP", 20),
    ("PHENOBARBITAL 200MG AMP", 15),
    ("PHENOBARBITAL 100MG TAB", 20),
    ("FENTANYL 0.5MG/10ML AMP", 10),
    ("HYDROMORPHONE 2.5MG TAB", 15),
    ("KETAMINE 500MG/10ML", 10),
    ("LORAZEPAM 2MG TAB", 20),
    ("MEPERIDINE 100MG/2ML AMP", 15),
    ("MIDAZOLAM 15MG/5ML AMP", 20),
    ("MIDAZOLAM 5MG/ML", 15),
    ("MORPHINE 3% ORAL SOLUTION", 10),
    ("MORPHINE 10MG AMP", 15),
    ("MORPHINE 50MG/5ML", 10),
    ("REMIFENTANIL 2MG AMP", 10),
    ("THIOPENTAL 1G AMP", 15),
]


def seed_defaults(db: Session) -> Dict[str, int]:
    """Insert default records into empty collections. Returns how many rows were added per collection."""
    added = {"users": 0, "warehouses": 0, "medicines": 0}
    try:
        if db.query(User.id).first() is None:
            for username, email, role, password in DEFAULT_USERS:
                db.add(User(username=username, email=email, role=role, password_hash=hash_password(password)))
                added["users"] += 1
        if db.query(Warehouse.id).first() is None:
            for name, description in DEFAULT_WAREHOUSES:
                db.add(Warehouse(name=name, description=description))
                added["warehouses"] += 1
        if db.query(Medicine.id).first() is None:
            for name, threshold in DEFAULT_MEDICINES:
                db.add(Medicine(name=name, low_stock_threshold=threshold, warehouse_stock={}, current_stock=0))
                added["medicines"] += 1
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Seeding default data failed")
        raise StoreIOError("Could not seed default data") from e
    if any(added.values()):
        logger.info("Seeded defaults: %s", added)
    return added
