"""Admin maintenance request bodies."""
from app.schemas.common import CamelModel


class ClearRegistrationRequest(CamelModel):
    email: str = ""
    admin_key: str = ""


class ClearAllRegistrationsRequest(CamelModel):
    admin_key: str = ""
    confirm: bool = False
