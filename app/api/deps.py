from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.db import get_session
from app.core.errors import NotAuthorized
from app.core.security import AdminAuthenticator, get_admin_authenticator
from app.services.notification_service import SmsSender, get_sms_sender

__all__ = ["get_session", "get_sms_sender", "require_admin", "SmsSender"]

security = HTTPBearer(auto_error=False)


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    authenticator: AdminAuthenticator = Depends(get_admin_authenticator),
) -> None:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise NotAuthorized()
    if not authenticator.verify(credentials.credentials):
        raise NotAuthorized()
