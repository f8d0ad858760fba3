import hmac
from typing import Protocol

from app.core.config import settings


class AdminAuthenticator(Protocol):
    @property
    def configured(self) -> bool: ...

    def verify(self, token: str | None) -> bool: ...


class SharedSecretAuthenticator:
    """Accepts exactly one token: the configured admin password.

    The login endpoint hands the password back as the bearer token, so there is
    no session and nothing expires. An empty secret rejects everything.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret.encode()

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def verify(self, token: str | None) -> bool:
        if not self._secret or not token:
            return False
        return hmac.compare_digest(token.encode(), self._secret)


def get_admin_authenticator() -> AdminAuthenticator:
    return SharedSecretAuthenticator(settings.admin_password)
