"""
Salon Scheduling API

This module provides a modular API structure for appointment scheduling.

Structure:
    api/
    ├── __init__.py              # This file
    ├── appointments/            # Appointments domain
    │   └── __init__.py          # Re-exports from scheduling_api
    ├── shared/                  # Shared utilities
    │   ├── __init__.py          # Re-exports schemas and validators
    │   ├── schemas.py           # Pydantic snapshot/payload schemas
    │   └── validators.py        # Input string validators
    └── scheduling_api.py        # Endpoint functions

Usage:
    from salon_scheduling.api.appointments import get_available_slots

    slots = get_available_slots("pro-1", "2024-12-23", 60, snapshot)
"""

# Re-export domains for convenient access
from . import appointments
from . import shared

__all__ = [
    "appointments",
    "shared",
]
