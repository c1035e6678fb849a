"""
Firebase Auth REST client
Only email/password sign-in and sign-up are used; roles live in our users collection
"""
import httpx
from typing import Optional, Dict, Any

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1"


class IdentityClient:
    def __init__(self, api_key: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.transport = transport

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                f"{IDENTITY_URL}/{endpoint}",
                params={"key": self.api_key},
                json=payload,
                timeout=10.0
            )
            response.raise_for_status()
            return response.json()

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """Verify credentials; returns uid and email"""
        data = await self._post("accounts:signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })
        return {"uid": data["localId"], "email": data.get("email", email)}

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._post("accounts:signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True
        })
        return {"uid": data["localId"], "email": data.get("email", email)}
