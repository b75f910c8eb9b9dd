from typing import Optional
from pydantic import BaseModel, ConfigDict


class AuthenticatedAccount(BaseModel):
    """Account context passed through authentication dependencies"""

    account_id: int
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
