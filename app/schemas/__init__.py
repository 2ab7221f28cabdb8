from app.schemas.admin import ClearAllRegistrationsRequest, ClearRegistrationRequest
from app.schemas.contract import CheckoutRequest, CheckoutResponse, ContactInfo, SaveContractRequest, SaveContractResponse, SessionSummary
from app.schemas.registration import (
    ApplicantInfo,
    ChildInfo,
    RegistrationLinkResponse,
    RegistrationStatusResponse,
    RegistrationUserData,
    SpouseInfo,
    SubmissionTokenRequest,
    SubmissionTokenResponse,
    SubmitRegistrationResponse,
)
