"""Appends contact submissions to the studio's Google Sheet."""

import logging
import os
from datetime import datetime, timezone

import config

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
SHEET_RANGE = "Sheet1!A:I"


def is_configured() -> bool:
    return bool(config.GOOGLE_SHEET_ID) and os.path.exists(config.GOOGLE_CREDENTIALS_FILE)


def contact_row(contact: dict) -> list:
    return [
        datetime.now(timezone.utc).isoformat(),
        contact["name"],
        contact["email"],
        contact.get("phone") or "N/A",
        contact.get("service") or "N/A",
        contact.get("budget") or "N/A",
        contact["message"],
        contact.get("ip_address") or "",
        "YES" if contact.get("is_spam") else "NO",
    ]


def sheets_service():
    from google.oauth2.service_account import Credentials
    from googleapiclient.discovery import build

    credentials = Credentials.from_service_account_file(config.GOOGLE_CREDENTIALS_FILE, scopes=SCOPES)
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


def append_contact(contact: dict) -> None:
    if not is_configured():
        logger.info("Google Sheets not configured, skipping")
        return
    sheets_service().spreadsheets().values().append(
        spreadsheetId=config.GOOGLE_SHEET_ID,
        range=SHEET_RANGE,
        valueInputOption="RAW",
        insertDataOption="INSERT_ROWS",
        body={"values": [contact_row(contact)]},
    ).execute()
    logger.info("Contact added to Google Sheets")
