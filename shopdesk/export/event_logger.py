from pathlib import Path
import csv, datetime, json

FIELDS = ["ts", "type", "user", "detail"]


def append_event(base_dir: str, event: dict):
    """Audit trail: one CSV per day, event-specific fields packed as JSON in `detail`."""
    Path(base_dir).mkdir(parents=True, exist_ok=True)
    now = datetime.datetime.now(datetime.timezone.utc)
    file = Path(base_dir) / f"events_{now.strftime('%Y%m%d')}.csv"
    new_file = not file.exists()
    detail = {k: v for k, v in event.items() if k not in ("type", "user")}
    with file.open("a", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDS)
        if new_file:
            writer.writeheader()
        writer.writerow({
            "ts": now.isoformat(),
            "type": event.get("type", ""),
            "user": event.get("user", ""),
            "detail": json.dumps(detail, ensure_ascii=False, default=str),
        })
    return file
