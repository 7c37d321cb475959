from enum import Enum

class Role(str, Enum):
    """Enumerates every role recognised by the booking API.

    Using an Enum avoids typos when referring to roles across the code-base
    while still being JSON-serialisable (inherits from *str*).
    """

    admin = "admin"
    lead_guide = "lead-guide"
    user = "user"


# Roles allowed to manage any booking
STAFF_ROLES = (Role.admin, Role.lead_guide)
