"""
User roles enumeration.

Defines the role types for the star booking marketplace.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Platform operator, receives platform fees
        STAR: Offers appointments, dedications and live shows
        FAN: Books and pays for star interactions (default role)
    """
    ADMIN = "ADMIN"
    STAR = "STAR"
    FAN = "FAN"


class StarPlan(str, enum.Enum):
    """Plans a fan can pay for to become a star. GOLD gets a vanity account id."""
    STANDARD = "STANDARD"
    GOLD = "GOLD"
