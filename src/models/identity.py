"""Model describing the authenticated caller."""

from pydantic import BaseModel, ConfigDict

from .enums import UserRole


class CallerIdentity(BaseModel):
    """Identity derived from a verified bearer token.

    Instances are immutable and live only as long as the session that
    created them.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole = UserRole.USER
    email: str | None = None
