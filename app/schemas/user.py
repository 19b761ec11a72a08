from pydantic import BaseModel
from typing import Optional


class UserContext(BaseModel):
    """Who is calling: a registered user, a guest, or both unknown.

    ``user_id`` comes from the bearer token; guests carry only a device
    fingerprint, which is also what ``max_attempts`` counts against.
    """
    user_id: Optional[int] = None
    fingerprint: Optional[str] = None
    client_ip: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None
