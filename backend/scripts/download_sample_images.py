#!/usr/bin/env python3
"""
Stáhne zástupné obrázky k ukázkovým produktům do PUBLIC_DIR/images/products.

Názvy souborů odpovídají cestám v seed_data (<prefix>-main.jpg,
<prefix>-gallery<N>.jpg).
"""
import argparse
import time
from pathlib import Path

import requests

import config

PLACEHOLDER_URL = "https://picsum.photos/seed/{seed}/800/600"

# prefix -> počet obrázků (main + galerie)
SAMPLE_PRODUCTS = {
    "hs100": 4,
    "sg200": 3,
    "m300": 3,
    "cs100": 3,
}


def image_names(prefix: str, count: int):
    yield f"{prefix}-main"
    for i in range(1, count):
        yield f"{prefix}-gallery{i}"


def save_image(seed: str, target: Path, overwrite: bool = False) -> bool:
    if target.exists() and not overwrite:
        print(f"[SKIP] {target.name} už existuje")
        return True

    url = PLACEHOLDER_URL.format(seed=seed)
    try:
        # picsum přesměrovává na CDN, requests redirect zvládne sám
        resp = requests.get(url, timeout=30)
        resp.raise_for_status()
    except requests.RequestException as e:
        print(f"[ERR]  {url} → {e}")
        return False

    target.write_bytes(resp.content)
    print(f"[OK]   {target.name} ({len(resp.content)} B)")
    return True


def main():
    parser = argparse.ArgumentParser(description="Stáhne ukázkové obrázky produktů.")
    parser.add_argument("--out", default=str(config.PRODUCT_IMAGES_DIR), help="cílový adresář")
    parser.add_argument("--overwrite", action="store_true", help="přepsat existující obrázky")
    parser.add_argument("--pause", type=float, default=0.3, help="pauza mezi požadavky (s)")
    args = parser.parse_args()

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    failed = 0
    for prefix, count in SAMPLE_PRODUCTS.items():
        print(f"[INFO] Stahuju obrázky pro {prefix}...")
        for name in image_names(prefix, count):
            if not save_image(name, out_dir / f"{name}.jpg", overwrite=args.overwrite):
                failed += 1
            time.sleep(args.pause)

    if failed:
        print(f"[WARN] {failed} obrázků se nepodařilo stáhnout.")
    else:
        print("[OK] All sample images downloaded successfully!")


if __name__ == "__main__":
    main()
