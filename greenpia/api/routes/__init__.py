"""
API route modules
"""
from .auth import router as auth_router
from .rotation import router as rotation_router
from .households import router as households_router
from .exemptions import router as exemptions_router
from .inquiries import router as inquiries_router
from .forms import router as forms_router
from .attendance import router as attendance_router
from .content import router as content_router
from .inventory import router as inventory_router
from .vault import router as vault_router
from .changelog import router as changelog_router

__all__ = [
    "auth_router",
    "rotation_router",
    "households_router",
    "exemptions_router",
    "inquiries_router",
    "forms_router",
    "attendance_router",
    "content_router",
    "inventory_router",
    "vault_router",
    "changelog_router",
]
