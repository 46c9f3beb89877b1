from datetime import datetime

from fastapi import HTTPException


# Parse ISO date/datetime query values; a bare date as upper bound covers the whole day
def parse_iso(value: str, end_of_day: bool = False) -> datetime:
    raw = value.strip()
    if end_of_day and len(raw) == 10:  # Format YYYY-MM-DD
        raw += " 23:59:59"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Bad datetime format: {value}")
