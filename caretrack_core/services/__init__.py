# =============================================================================
# caretrack_core/services/__init__.py
# Service Layer
# =============================================================================

from caretrack_core.services.base_service import BaseService, ServiceResult
from caretrack_core.services.session_service import SessionService

__all__ = [
    "BaseService",
    "ServiceResult",
    "SessionService",
]
