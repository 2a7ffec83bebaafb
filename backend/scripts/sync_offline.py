#!/usr/bin/env python3
"""
CLI nad offline zrcadlem produktů.

    python -m scripts.sync_offline --email jan@example.com --password ... save 12
    python -m scripts.sync_offline remove 12
    python -m scripts.sync_offline list
"""
import argparse
import os

from client.api import ApiError, CatalogApi
from client.offline import LocalDatabase, remove_saved_product, save_product_for_offline

DEFAULT_ROOT = os.getenv("OFFLINE_DIR", "offline_data")


def _progress(done: int, total: int, url: str) -> None:
    print(f"[INFO]   {done}/{total} {url}")


def main():
    parser = argparse.ArgumentParser(description="Správa offline uložených produktů.")
    parser.add_argument("--api-url", default=None, help="URL API (default: $API_URL)")
    parser.add_argument("--root", default=DEFAULT_ROOT, help="adresář lokálního úložiště")
    parser.add_argument("--email", default=os.getenv("DOORMATE_EMAIL"))
    parser.add_argument("--password", default=os.getenv("DOORMATE_PASSWORD"))

    sub = parser.add_subparsers(dest="command", required=True)
    save_p = sub.add_parser("save", help="uložit produkt pro offline použití")
    save_p.add_argument("product_id", type=int)
    remove_p = sub.add_parser("remove", help="odebrat uložený produkt")
    remove_p.add_argument("product_id", type=int)
    sub.add_parser("list", help="vypsat lokálně uložené produkty")

    args = parser.parse_args()

    api = CatalogApi(base_url=args.api_url)
    db = LocalDatabase(args.root, api=api)

    if args.command == "list":
        products = db.get_offline_products()
        last_sync = db.get_last_sync_time()
        print(f"[INFO] Poslední synchronizace: {last_sync.isoformat() if last_sync else '-'}")
        for pid, product in products.items():
            print(f"  {pid:>5}  {product.get('sku', ''):<15} {product.get('name', '')}  ({product['last_updated']})")
        print(f"[INFO] Celkem {len(products)} produktů.")
        return

    if not args.email or not args.password:
        parser.error("save/remove vyžaduje --email a --password")

    try:
        data = api.login(args.email, args.password)
        db.save_user_profile(data["user"])

        if args.command == "save":
            product = save_product_for_offline(api, db, args.product_id, progress=_progress)
            print(f"[OK] Produkt {product['id']} ({product['name']}) uložen offline.")
        else:
            remove_saved_product(api, db, args.product_id)
            print(f"[OK] Produkt {args.product_id} odebrán.")
    except ApiError as e:
        print(f"[ERR] {e.status}: {e.message}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
