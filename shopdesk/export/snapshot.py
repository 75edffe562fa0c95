from pathlib import Path
import csv, gzip, datetime

from shopdesk.core.services.catalog import CatalogService

COLUMNS = ["product_id", "name", "price", "color", "size", "qty"]


def snapshot_stock_to_csv_gz(store, out_dir: str):
    """Per product/color/size stock levels as stock_YYYYMMDD.csv.gz; returns the path."""
    Path(out_dir).mkdir(parents=True, exist_ok=True)
    stamp = datetime.datetime.now().strftime("%Y%m%d")
    out = Path(out_dir) / f"stock_{stamp}.csv.gz"
    rows = CatalogService(store).stock_rows()
    with gzip.open(out, "wt", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(COLUMNS)
        for row in rows:
            writer.writerow([row[c] for c in COLUMNS])
    return str(out)
