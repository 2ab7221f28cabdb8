"""One-time Google Drive consent: obtain the refresh token for GOOGLE_OAUTH_REFRESH_TOKEN."""
import logging
from html import escape

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from app.errors import CollaboratorError
from app.services import google_drive

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/auth/google", tags=["google-auth"])


@router.get("/authorize")
def authorize():
    try:
        url = google_drive.get_authorization_url()
    except CollaboratorError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return RedirectResponse(url)


@router.get("/callback", response_class=HTMLResponse)
def callback(code: str | None = Query(None), error: str | None = Query(None)):
    if error:
        raise HTTPException(status_code=400, detail=f"Authorization failed: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="No authorization code received")
    try:
        tokens = google_drive.exchange_code_for_tokens(code)
    except CollaboratorError as e:
        log.error("[Drive] %s", e)
        raise HTTPException(status_code=502, detail="Failed to exchange authorization code")
    refresh_token = tokens.get("refresh_token") or ""
    log.info("[Drive] OAuth tokens received; copy the refresh token from the callback page into .env")
    return f"""
    <html><head><title>Authorization Successful</title></head>
    <body style="font-family:sans-serif;max-width:600px;margin:50px auto;">
      <h1>Authorization Successful</h1>
      <p>Google Drive access has been granted. Add this line to your <code>.env</code> and restart the server:</p>
      <pre style="background:#1e293b;color:#10b981;padding:15px;word-break:break-all;white-space:pre-wrap;">GOOGLE_OAUTH_REFRESH_TOKEN={escape(refresh_token)}</pre>
    </body></html>
    """
