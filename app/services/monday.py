"""Monday.com CRM: one board item per paid client."""
import json
import logging

import httpx

from app.config import get_settings
from app.errors import CollaboratorError

log = logging.getLogger("uvicorn.error")

CREATE_ITEM_MUTATION = """
mutation ($boardId: ID!, $itemName: String!, $columnValues: JSON!) {
  create_item (board_id: $boardId, item_name: $itemName, column_values: $columnValues) {
    id
  }
}
"""


def create_monday_item(
    first_name: str,
    last_name: str,
    email: str,
    phone: str,
    marital_status: str,
    amount: str,
    drive_link: str | None = None,
) -> str:
    """Returns the new item id, or "" when Monday is not configured."""
    settings = get_settings()
    if not settings.monday_api_token or not settings.monday_board_id:
        log.info("[Monday] Not configured; item not created for %s", email)
        return ""
    variables = {
        "boardId": settings.monday_board_id,
        "itemName": f"{first_name} {last_name}",
        "columnValues": json.dumps(
            {
                "status": {"label": "Paid"},
                "email": email,
                "phone": phone,
                "marital_status": marital_status,
                "amount": amount,
                "contract_link": drive_link or "",
            }
        ),
    }
    try:
        with httpx.Client(timeout=15.0) as client:
            r = client.post(
                settings.monday_api_url,
                headers={"Authorization": settings.monday_api_token, "Content-Type": "application/json"},
                json={"query": CREATE_ITEM_MUTATION, "variables": variables},
            )
            r.raise_for_status()
            body = r.json()
    except (httpx.HTTPError, ValueError) as e:
        raise CollaboratorError("monday", f"create_item failed: {e}") from e
    if body.get("errors"):
        raise CollaboratorError("monday", f"create_item failed: {body['errors']}")
    item_id = ((body.get("data") or {}).get("create_item") or {}).get("id") or ""
    log.info("[Monday] Created item %s for %s", item_id, email)
    return str(item_id)
