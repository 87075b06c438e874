# aisentinel/models/__init__.py

from .models import (
    Company,
    CompanyEmployee,
    User,
    UserSession
)
