"""Detailed registration wizard schemas (applicant, spouse, children) and token endpoints."""
from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel

RegistrationMaritalStatus = Literal[
    "single",
    "married",
    "divorced",
    "widowed",
    "separated",
    "married_to_citizen",
    "married_to_lpr",
    "legally_separated",
]


class DateOfBirth(CamelModel):
    day: str = ""
    month: str = ""
    year: str = ""

    def display(self) -> str:
        if not (self.day and self.month and self.year):
            return "N/A"
        return f"{self.day.zfill(2)}/{self.month.zfill(2)}/{self.year}"


class CurrentResidence(CamelModel):
    street_address: str = ""
    street_address2: str | None = None
    city: str = ""
    state_province: str = ""
    postal_code: str = ""

    def display(self) -> str:
        parts = [self.street_address, self.street_address2, self.city, self.state_province, self.postal_code]
        return ", ".join(p for p in parts if p) or "N/A"


class ApplicantInfo(CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: DateOfBirth = Field(default_factory=DateOfBirth)
    gender: str = ""
    city_of_birth: str = ""
    country_of_birth: str = ""
    mailing_address: str = ""
    education_level: str = ""
    current_residence: CurrentResidence = Field(default_factory=CurrentResidence)

    def has_identity(self) -> bool:
        return all(v.strip() for v in (self.first_name, self.last_name, self.email, self.phone))


class SpouseInfo(CamelModel):
    full_name: str = ""
    date_of_birth: DateOfBirth = Field(default_factory=DateOfBirth)
    gender: str = ""
    city_of_birth: str = ""
    country_of_birth: str = ""
    education_level: str = ""
    is_us_citizen_or_lpr: bool = Field(False, alias="isUSCitizenOrLPR")


class ChildInfo(CamelModel):
    id: str
    full_name: str = ""
    date_of_birth: DateOfBirth = Field(default_factory=DateOfBirth)
    gender: str = ""
    birth_place: str = ""
    is_us_citizen_or_lpr: bool = Field(False, alias="isUSCitizenOrLPR")


class SubmissionTokenRequest(CamelModel):
    email: str = ""
    phone: str = ""
    first_name: str = ""
    last_name: str = ""


class SubmissionTokenResponse(CamelModel):
    success: bool = True
    submission_token: str
    registration_id: str


class RegistrationStatusResponse(CamelModel):
    submitted: bool
    registration_id: str | None = None
    submitted_at: int | None = None


class SubmitRegistrationResponse(CamelModel):
    success: bool = True
    registration_id: str
    folder_link: str = ""
    message: str = "Registration submitted successfully"


class RegistrationUserData(CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    marital_status: str = ""


class RegistrationLinkResponse(CamelModel):
    token: str
    user_data: RegistrationUserData
