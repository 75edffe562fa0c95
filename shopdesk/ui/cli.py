import argparse
import json

from shopdesk.api.deps import open_store
from shopdesk.core.services.catalog import CatalogService
from shopdesk.core.services.ledger import InventoryLedger
from shopdesk.core.services.notifications import LogNotifier, OrderNotifier
from shopdesk.core.services.settings import SettingsService
from shopdesk.core.services.spendings import SpendingService
from shopdesk.core.services.stats import StatsAggregator
from shopdesk.export.snapshot import snapshot_stock_to_csv_gz
from shopdesk.utils.config import load_config
from shopdesk.utils.exceptions import ShopError


def get_store(cfg):
    sec = cfg.security
    return open_store(cfg.database_path, float(cfg.store["busy_timeout"]),
                      int(cfg.store["transaction_retries"]),
                      sec["default_admin_username"], sec["default_admin_password"])


def parse_sizes(items):
    """["S=2", "M=1"] -> {"S": 2, "M": 1}"""
    out = {}
    for item in items or []:
        size, sep, qty = item.partition("=")
        if not sep or not size:
            raise argparse.ArgumentTypeError(f"expected SIZE=QTY, got '{item}'")
        try:
            out[size] = int(qty)
        except ValueError:
            raise argparse.ArgumentTypeError(f"quantity must be an integer, got '{item}'")
    return out


def build_parser():
    parser = argparse.ArgumentParser(prog="shopdesk", description="ShopDesk admin CLI")
    parser.add_argument("--config", help="config.yaml path")
    sub = parser.add_subparsers(dest="cmd")

    p_add = sub.add_parser("product-add", help="add a product with one color")
    p_add.add_argument("--name", required=True)
    p_add.add_argument("--price", required=True)
    p_add.add_argument("--category")
    p_add.add_argument("--color", required=True)
    p_add.add_argument("--code", default="")
    p_add.add_argument("--stock", nargs="*", default=[], help="SIZE=QTY ...")

    sub.add_parser("product-list", help="list products with stock")

    s_add = sub.add_parser("sale-add", help="record an offline sale")
    s_add.add_argument("--product-id", required=True)
    s_add.add_argument("--color", required=True)
    s_add.add_argument("--sizes", nargs="+", required=True, help="SIZE=QTY ...")
    s_add.add_argument("--total")
    s_add.add_argument("--notes")

    sp = sub.add_parser("spending-add", help="record a spending")
    sp.add_argument("--description", required=True)
    sp.add_argument("--amount", required=True)
    sp.add_argument("--category", default="general")
    sp.add_argument("--date")
    sp.add_argument("--notes")

    sub.add_parser("stats", help="print the KPI report as JSON")
    sub.add_parser("snapshot", help="export stock levels to csv.gz")
    sub.add_parser("notify-orders", help="push a notification for each new order")

    srv = sub.add_parser("serve", help="run the HTTP API")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        return 0

    if args.cmd == "serve":
        import uvicorn
        uvicorn.run("shopdesk.api.server:app", host=args.host, port=args.port)
        return 0

    cfg = load_config(args.config)
    store = get_store(cfg)
    try:
        if args.cmd == "product-add":
            pid = CatalogService(store).add_product(
                args.name, args.price,
                [{"name": args.color, "code": args.code, "stock": parse_sizes(args.stock)}],
                category=args.category,
            )
            print(f"product added: id={pid}")
        elif args.cmd == "product-list":
            rows = CatalogService(store).list_products()
            if not rows:
                print("(empty)")
            for r in rows:
                colors = "; ".join(
                    f"{c.get('name')}: " + ", ".join(f"{s}={q}" for s, q in (c.get("stock") or {}).items())
                    for c in r.get("colors") or []
                )
                print(f"[{r['id']}] {r.get('name')} price={r.get('price')} | {colors}")
        elif args.cmd == "sale-add":
            sale = InventoryLedger(store).record_sale(
                args.product_id, args.color, parse_sizes(args.sizes),
                total_amount=args.total, notes=args.notes,
            )
            print(f"sale recorded: id={sale['id']} qty={sale['totalQuantity']} amount={sale['totalAmount']}")
        elif args.cmd == "spending-add":
            sp = SpendingService(store).add(args.description, args.amount, args.category,
                                            args.date, args.notes)
            print(f"spending added: id={sp['id']}")
        elif args.cmd == "stats":
            report = StatsAggregator(store, cfg.stats["shipping_fee"],
                                     cfg.stats["low_stock_threshold"]).build()
            print(json.dumps(report, indent=2, ensure_ascii=False))
        elif args.cmd == "snapshot":
            print(f"snapshot written: {snapshot_stock_to_csv_gz(store, cfg.paths['snapshots_dir'])}")
        elif args.cmd == "notify-orders":
            sent = OrderNotifier(store, SettingsService(store.db), LogNotifier()).poll()
            print(f"notified: {sent}")
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except ShopError as e:
        print(f"error: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
