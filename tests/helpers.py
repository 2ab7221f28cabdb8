"""Shared test constants and payload builders."""
import json

SIGNATURE_TTL_MS = 60 * 60 * 1000
T0 = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}

# 1x1 transparent PNG
SIGNATURE_PNG = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

ALICE = {"email": "a@x.com", "phone": "111", "firstName": "Alice", "lastName": "Smith"}
BOB = {"email": "b@x.com", "phone": "222", "firstName": "Bob", "lastName": "Jones"}


def contact_info(**overrides) -> dict:
    info = {"firstName": "Alice", "lastName": "Smith", "email": "alice@example.com", "phone": "+1 555 123 4567"}
    info.update(overrides)
    return info


def applicant_info(identity: dict = ALICE, **overrides) -> dict:
    info = {
        "firstName": identity["firstName"],
        "lastName": identity["lastName"],
        "email": identity["email"],
        "phone": identity["phone"],
        "dateOfBirth": {"day": "5", "month": "3", "year": "1990"},
        "gender": "female",
        "cityOfBirth": "Haifa",
        "countryOfBirth": "Israel",
        "mailingAddress": "1 Main St",
        "educationLevel": "university_degree",
        "currentResidence": {"streetAddress": "1 Main St", "city": "Haifa", "stateProvince": "", "postalCode": "3100"},
    }
    info.update(overrides)
    return info


def submission_form(token: str, identity: dict = ALICE, marital_status: str = "single", **extra) -> dict:
    form = {
        "applicantInfo": json.dumps(applicant_info(identity)),
        "maritalStatus": marital_status,
        "submissionToken": token,
        "children": json.dumps(extra.pop("children", [])),
    }
    if "spouse" in extra:
        form["spouseInfo"] = json.dumps(extra.pop("spouse"))
    form.update(extra)
    return form
