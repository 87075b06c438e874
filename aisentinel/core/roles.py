DEMO = 0
USER = 1
ADMIN = 2
ADMINISTRATOR = 998
OWNER = 999
SUPER_USER = 1000

ROLE_NAMES = {
    DEMO: "demo",
    USER: "user",
    ADMIN: "admin",
    ADMINISTRATOR: "administrator",
    OWNER: "owner",
    SUPER_USER: "super-user",
}

# employee role on the company roster -> role level
EMPLOYEE_ROLE_LEVELS = {
    "employee": USER,
    "admin": ADMINISTRATOR,
    "owner": OWNER,
}


def role_from_level(level: int) -> str:
    """Display label for a level; levels between tiers take the tier below."""
    for threshold in sorted(ROLE_NAMES, reverse=True):
        if level >= threshold:
            return ROLE_NAMES[threshold]
    return ROLE_NAMES[DEMO]


def has_access_level(level, required: int) -> bool:
    return (level or 0) >= required
