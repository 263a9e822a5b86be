from enum import Enum

from pydantic import BaseModel


class Role(str, Enum):
    ADMINISTRATOR = "administrator"
    PROVIDER = "provider"
    CLIENT = "client"


class Actor(BaseModel):
    """Authenticated caller, as handed over by the surrounding system.

    ``id`` is the provider id for providers and the client id for clients.
    """
    id: int
    role: Role

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMINISTRATOR
