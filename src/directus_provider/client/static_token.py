"""Static-token module -- a fixed access token, typically a user's static token."""

from __future__ import annotations

from typing import Optional

from directus_provider.client.base import CapabilityModule
from directus_provider.models import Capability


class StaticTokenClient(CapabilityModule):
    """Holds one access token for the lifetime of the client."""

    capability = Capability.STATIC_TOKEN

    def __init__(self, access_token: str) -> None:
        super().__init__()
        self._token: Optional[str] = access_token

    async def get_token(self) -> Optional[str]:
        return self._token

    async def set_token(self, access_token: Optional[str]) -> None:
        self._token = access_token or None
