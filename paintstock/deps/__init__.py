from .auth import AuthContext, current_principal, require_api_or_jwt, require_ui_or_token
from .ui_auth import is_logged_in, require_ui_session

__all__ = [
    "AuthContext",
    "current_principal",
    "is_logged_in",
    "require_api_or_jwt",
    "require_ui_or_token",
    "require_ui_session",
]
