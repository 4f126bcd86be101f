import json
import logging
import pathlib
from datetime import datetime, timezone
from typing import Optional

from sheettrack.util.settings import Settings

logger = logging.getLogger(__name__)


class ActiveSheetStore:
    """
    Remembers which spreadsheet is linked, across restarts.

    The file holds a single record: {"spreadsheetId": ..., "updatedAt": ...}
    """

    def __init__(self, path):
        self.path = pathlib.Path(path)

    def load(self) -> Optional[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                parsed = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable active sheet store at %s", self.path)
            return None

        if isinstance(parsed, dict) and isinstance(parsed.get("spreadsheetId"), str):
            return parsed["spreadsheetId"]
        return None

    def save(self, spreadsheet_id: str) -> None:
        payload = {
            "spreadsheetId": spreadsheet_id,
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        logger.info("Linked spreadsheet %s", spreadsheet_id)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.info("Cleared linked spreadsheet")


def get_store():
    return ActiveSheetStore(Settings().store.path)
