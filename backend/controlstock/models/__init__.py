"""
Database models for ControlStock
"""
from controlstock.database import Base

from .user import User, UserSession
from .warehouse import Warehouse
from .medicine import Medicine
from .movement import Movement
from .audit import AuditLog

__all__ = [
    "Base",
    "User",
    "UserSession",
    "Warehouse",
    "Medicine",
    "Movement",
    "AuditLog",
]
