#!/usr/bin/env python3
"""
Scraper produktů Dynaco (rychloběžná vrata).

- projde stránku /products a posbírá odkazy na detaily produktů
- z každého detailu vytáhne název, model, popis, tabulku specifikací,
  PDF manuály, seznamy vlastností, obrázky a rozměry
- SKU generuje jako DYN-<MODEL>
- manuály stáhne do PUBLIC_DIR/manuals a přepíše URL na lokální /manuals/...
- výsledek buď uloží do DB jako Door (upsert podle SKU), nebo vypíše do JSON

HTML se stahuje přes curl_cffi (Chrome fingerprint), parsuje BeautifulSoup + lxml.
"""

import argparse
import json
import random
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from curl_cffi import requests as crequests

import config

DYNACO_BASE_URL = "https://www.dynacodoor.us"

BRAND = {
    "id": "dynaco",
    "name": "Dynaco",
    "website": DYNACO_BASE_URL,
    "description": "Dynaco is a leading manufacturer of high-speed doors",
}

COMMON_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}

_NUMERIC_VALUE_RE = re.compile(r"^([\d.]+)\s*([a-zA-Z/°%]+)?$")


# ---------------- HTTP ----------------

def fetch_html(session, url: str, max_retries: int = 3) -> Optional[str]:
    """HTML přes curl_cffi; při 403/429/5xx zkouší znovu, při 404 vrací None."""
    for attempt in range(1, max_retries + 1):
        try:
            resp = session.get(url, headers=COMMON_HEADERS, timeout=30)
        except Exception as e:
            print(f"[WARN] HTML request chyba (pokus {attempt}/{max_retries}) → {e}")
            time.sleep(random.uniform(2.0, 4.0))
            continue

        if resp.status_code == 404:
            print(f"[WARN] 404 {url}")
            return None
        if resp.status_code in (403, 429) or resp.status_code >= 500:
            print(f"[WARN] HTML status {resp.status_code} (pokus {attempt}/{max_retries})")
            time.sleep(random.uniform(3.0, 6.0))
            continue
        if resp.status_code == 200:
            return resp.text

        print(f"[WARN] Neočekávaný status {resp.status_code} pro {url}")
        return None

    return None


def download_manual(session, url: str, target: Path) -> int:
    """Stáhne PDF a vrátí velikost v bajtech."""
    resp = session.get(url, timeout=60)
    resp.raise_for_status()
    target.write_bytes(resp.content)
    return len(resp.content)


# ---------------- Parsování ----------------

def extract_product_links(html: str, base_url: str = DYNACO_BASE_URL) -> List[str]:
    soup = BeautifulSoup(html, "lxml")
    links = []
    for a in soup.select('a[href*="/products/"]'):
        href = urljoin(base_url + "/", a.get("href", ""))
        if href.rstrip("/").endswith("/products") or "category" in href:
            continue
        links.append(href.split("#", 1)[0])
    # pořadí zachováme, duplicity pryč
    return list(dict.fromkeys(links))


def _text(soup, selector: str) -> str:
    el = soup.select_one(selector)
    return el.get_text(" ", strip=True) if el else ""


def _items(soup, selector: str) -> List[str]:
    return [t for t in (li.get_text(" ", strip=True) for li in soup.select(selector)) if t]


def parse_specifications(soup) -> List[Dict]:
    specs = []
    for row in soup.select("table tr"):
        cells = row.find_all(["th", "td"])
        if len(cells) < 2:
            continue
        key = cells[0].get_text(" ", strip=True)
        value = cells[-1].get_text(" ", strip=True)
        if not key or not value:
            continue

        m = _NUMERIC_VALUE_RE.match(value)
        if m:
            try:
                specs.append({"key": key, "value": float(m.group(1)), "unit": m.group(2) or None})
                continue
            except ValueError:
                pass
        specs.append({"key": key, "value": value, "unit": None})
    return specs


def guess_manual_type(url: str) -> str:
    lower = url.lower()
    if "install" in lower:
        return "installation"
    if "user" in lower:
        return "user"
    if "maintenance" in lower:
        return "maintenance"
    return "technical"


def parse_manuals(soup, page_url: str) -> List[Dict]:
    manuals = []
    seen = set()
    for a in soup.select('a[href$=".pdf"], a[href$=".PDF"]'):
        url = urljoin(page_url, a.get("href", ""))
        if url in seen:
            continue
        seen.add(url)
        manuals.append(
            {
                "title": a.get_text(" ", strip=True) or "Product Manual",
                "url": url,
                "type": guess_manual_type(url),
                "language": "English",
                "version": "1.0",
                "last_updated": datetime.now(timezone.utc).isoformat(),
                "file_size": 0,
            }
        )
    return manuals


def parse_dimensions(text: str) -> Optional[Dict]:
    height = re.search(r"height[:\s]+(\d+)", text, re.I)
    width = re.search(r"width[:\s]+(\d+)", text, re.I)
    if not height and not width:
        return None
    return {
        "height": float(height.group(1)) if height else None,
        "width": float(width.group(1)) if width else None,
        "unit": "mm",
    }


def parse_product_page(html: str, page_url: str) -> Dict:
    soup = BeautifulSoup(html, "lxml")

    main_img = soup.select_one(".product-image img, .main-image img")
    gallery = [urljoin(page_url, img["src"]) for img in soup.select(".gallery img") if img.get("src")]

    return {
        "name": _text(soup, "h1, .product-title") or "Unknown Product",
        "model": _text(soup, ".model, .reference") or "Unknown Model",
        "description": _text(soup, ".description, .content p"),
        "short_description": _text(soup, ".short-description, .summary") or None,
        "specifications": parse_specifications(soup),
        "manuals": parse_manuals(soup, page_url),
        "features": _items(soup, ".features li, .benefits li"),
        "applications": _items(soup, ".applications li, .uses li"),
        "materials": _items(soup, ".materials li, .construction li"),
        "safety_features": _items(soup, ".safety li, .safety-features li"),
        "max_dimensions": parse_dimensions(_text(soup, ".dimensions, .specifications")),
        "images": {
            "main": urljoin(page_url, main_img["src"]) if main_img and main_img.get("src") else None,
            "gallery": gallery,
        },
    }


def make_sku(model: str) -> str:
    return "DYN-" + re.sub(r"[^a-zA-Z0-9]", "", model).upper()


def to_door(data: Dict) -> Dict:
    """Naparsovaná data -> payload pro DoorCreate."""
    keywords = [data["name"], data["model"], "Dynaco", "High-Speed Door"]
    keywords += data.get("features", []) + data.get("applications", [])
    return {
        **data,
        "product_type": "door",
        "sku": make_sku(data["model"]),
        "description": data.get("description") or data["name"],
        "brand_id": BRAND["id"],
        "brand": BRAND,
        "category": "High-Speed Doors",
        "sub_category": "Industrial",
        "status": "active",
        "door_type": "high-speed",
        "operation_type": "automatic",
        "search_keywords": list(dict.fromkeys(k for k in keywords if k)),
    }


def localize_manuals(session, door: Dict, out_dir: Path) -> None:
    """Stáhne manuály; při chybě zůstane původní URL."""
    for manual in door["manuals"]:
        filename = f"dynaco-{door['model'].lower().replace(' ', '-')}-{manual['type']}.pdf"
        try:
            size = download_manual(session, manual["url"], out_dir / filename)
        except Exception as e:
            print(f"[WARN] Manuál {manual['url']} se nestáhl → {e}")
            continue
        manual["url"] = f"/manuals/{filename}"
        manual["file_size"] = size
        print(f"[OK]   manuál {filename} ({size} B)")


# ---------------- DB ----------------

def upsert_doors(doors: List[Dict]) -> None:
    from pydantic import ValidationError

    from database import Base, SessionLocal, engine
    from models import Door
    from schemas import DoorCreate

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        for payload in doors:
            try:
                values = DoorCreate.model_validate(payload).model_dump(mode="json", exclude={"product_type"})
            except ValidationError as e:
                print(f"[ERR] {payload['sku']}: {e.error_count()} chyb validace, přeskakuju")
                continue

            row = db.query(Door).filter(Door.sku == values["sku"]).first()
            if row:
                for field, value in values.items():
                    setattr(row, field, value)
                print(f"[OK] Aktualizováno {values['sku']}")
            else:
                db.add(Door(**values))
                print(f"[OK] Vloženo {values['sku']}")
        db.commit()
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Stáhne produkty Dynaco a uloží je jako Door.")
    parser.add_argument("--base-url", default=DYNACO_BASE_URL)
    parser.add_argument("--limit", type=int, default=None, help="max počet produktů")
    parser.add_argument("--json", dest="json_out", help="místo DB zapsat výsledek do JSON souboru")
    parser.add_argument("--skip-manuals", action="store_true", help="nestahovat PDF manuály")
    parser.add_argument("--pause", type=float, default=1.5, help="pauza mezi produkty (s)")
    args = parser.parse_args()

    session = crequests.Session(impersonate="chrome")

    print(f"[INFO] Načítám seznam produktů z {args.base_url}/products")
    listing = fetch_html(session, f"{args.base_url}/products")
    if not listing:
        print("[ERR] Seznam produktů se nepodařilo stáhnout.")
        return

    links = extract_product_links(listing, args.base_url)
    if args.limit:
        links = links[: args.limit]
    print(f"[INFO] Nalezeno {len(links)} produktů.")

    doors = []
    for i, link in enumerate(links, start=1):
        print(f"[INFO] ({i}/{len(links)}) {link}")
        html = fetch_html(session, link)
        if not html:
            continue

        door = to_door(parse_product_page(html, link))
        if not args.skip_manuals:
            localize_manuals(session, door, config.MANUALS_DIR)
        doors.append(door)
        print(f"[OK] {door['sku']}  {door['name']}")
        time.sleep(args.pause)

    if args.json_out:
        Path(args.json_out).write_text(json.dumps(doors, ensure_ascii=False, indent=2), encoding="utf-8")
        print(f"[OK] Zapsáno {len(doors)} produktů do {args.json_out}")
    else:
        upsert_doors(doors)
        print(f"[OK] Uloženo {len(doors)} produktů do DB")


if __name__ == "__main__":
    main()
