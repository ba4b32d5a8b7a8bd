# constants/roles.py
"""
Role names seeded into the roles table at startup.
"""

ADMIN = "ADMIN"
KONTROLA = "KONTROLA"
FUEL_OPERATOR = "FUEL_OPERATOR"
SERVICER = "SERVICER"
AERODROM = "AERODROM"
CARINA = "CARINA"

DEFAULT_ROLES = [
    (ADMIN, "System Administrator"),
    (KONTROLA, "Fuel control / audit"),
    (FUEL_OPERATOR, "Fuel operator"),
    (SERVICER, "Vehicle servicing"),
    (AERODROM, "Airport staff (read-only)"),
    (CARINA, "Customs (read-only)"),
]

# roles allowed to issue consistency override tokens
OVERRIDE_ROLES = (ADMIN, KONTROLA)

# roles allowed to write fuel data
FUEL_WRITE_ROLES = (ADMIN, KONTROLA, FUEL_OPERATOR)

# roles allowed to manage master data and correct tanks
FUEL_ADMIN_ROLES = (ADMIN, KONTROLA)

# roles allowed to manage vehicles and service records
FLEET_ROLES = (ADMIN, SERVICER)
