"""
Auth context — who is paying and which console API they talk to.

The console serves three audiences (admin, tenant, client) from different
API roots. The context is built once by the host and injected everywhere;
nothing reads ambient session state.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from cloudpay.errors import AuthError

Scope = Literal["admin", "tenant", "client"]

# Where the host app lives for each scope, used for post-payment navigation.
APP_PATHS: dict[str, dict[str, str]] = {
    "admin": {"storage": "/admin-dashboard/object-storage", "instances": "/admin-dashboard/instances"},
    "tenant": {"storage": "/dashboard/object-storage", "instances": "/dashboard/instances"},
    "client": {"storage": "/client-dashboard/object-storage", "instances": "/client-dashboard/instances"},
}


def scope_from_path(path: str) -> Scope:
    """Detect the console audience from an app route."""
    if path.startswith("/admin-dashboard") or path.startswith("/admin"):
        return "admin"
    if path.startswith("/dashboard"):
        return "tenant"
    return "client"


class AuthContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: Optional[str] = None
    base_url: str
    scope: Scope = "client"
    tenant_header: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def cards_path(self) -> str:
        """Saved cards live under /business for client accounts."""
        return "/cards" if self.scope in ("admin", "tenant") else "/business/cards"

    @property
    def app_paths(self) -> dict[str, str]:
        return APP_PATHS[self.scope]

    def require(self) -> "AuthContext":
        if not self.is_authenticated:
            raise AuthError("Not authenticated. Provide an access token first.")
        return self
