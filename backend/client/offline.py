"""
Offline zrcadlo produktů na straně klienta.

Lokální key-value úložiště je jeden JSON soubor (storage.json) v kořenovém
adresáři, vedle něj images/ a manuals/ se staženými soubory:

  offline_products  -> {product_id: snapshot produktu + last_updated}
  last_sync         -> ISO čas posledního uložení
  user_profile      -> profil přihlášeného uživatele

Poslední zápis vyhrává, nic se automaticky nemaže ani neverzuje.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import requests

from client.api import CatalogApi

logger = logging.getLogger(__name__)

OFFLINE_PRODUCTS_KEY = "offline_products"
LAST_SYNC_KEY = "last_sync"
USER_PROFILE_KEY = "user_profile"

DOWNLOAD_TIMEOUT = 60

# progress(hotovo, celkem, url)
ProgressCallback = Callable[[int, int, str], None]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalDatabase:
    def __init__(self, root, api: Optional[CatalogApi] = None, session: Optional[requests.Session] = None):
        self.root = Path(root)
        self.images_dir = self.root / "images"
        self.manuals_dir = self.root / "manuals"
        self.storage_file = self.root / "storage.json"
        self.api = api or CatalogApi()
        self.session = session or self.api.session

        for d in (self.root, self.images_dir, self.manuals_dir):
            d.mkdir(parents=True, exist_ok=True)

    # ---------- key-value úložiště ----------

    def _load(self) -> Dict[str, Any]:
        if not self.storage_file.exists():
            return {}
        try:
            return json.loads(self.storage_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Offline storage %s unreadable: %s", self.storage_file, exc)
            return {}

    def _get(self, key: str, default=None):
        return self._load().get(key, default)

    def _set(self, **values) -> None:
        data = self._load()
        data.update(values)
        tmp = self.storage_file.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.storage_file)

    # ---------- produkty ----------

    def save_product_offline(self, product: Dict[str, Any]) -> None:
        now = _now_iso()
        products = self.get_offline_products()
        products[str(product["id"])] = {**product, "last_updated": now}
        self._set(**{OFFLINE_PRODUCTS_KEY: products, LAST_SYNC_KEY: now})
        logger.info("Product %s saved for offline access", product["id"])

    def get_offline_products(self) -> Dict[str, Dict[str, Any]]:
        return self._get(OFFLINE_PRODUCTS_KEY, {})

    def get_offline_product(self, product_id) -> Optional[Dict[str, Any]]:
        return self.get_offline_products().get(str(product_id))

    def remove_offline_product(self, product_id) -> None:
        products = self.get_offline_products()
        if products.pop(str(product_id), None) is not None:
            self._set(**{OFFLINE_PRODUCTS_KEY: products})
            logger.info("Product %s removed from offline storage", product_id)

    def is_product_available_offline(self, product_id) -> bool:
        return str(product_id) in self.get_offline_products()

    def get_last_sync_time(self) -> Optional[datetime]:
        raw = self._get(LAST_SYNC_KEY)
        return datetime.fromisoformat(raw) if raw else None

    # ---------- profil ----------

    def save_user_profile(self, user: Dict[str, Any]) -> None:
        self._set(**{USER_PROFILE_KEY: user})

    def get_user_profile(self) -> Optional[Dict[str, Any]]:
        return self._get(USER_PROFILE_KEY)

    def is_online(self) -> bool:
        try:
            resp = self.session.get(f"{self.api.server_url}/health", timeout=5)
        except requests.RequestException:
            return False
        return resp.ok

    # ---------- stahování ----------

    def _download(self, url: str, target: Path) -> str:
        """Stáhne soubor, pokud už neexistuje; vrací lokální cestu."""
        if target.exists():
            return str(target)

        resp = self.session.get(self.api.absolute_url(url), timeout=DOWNLOAD_TIMEOUT)
        resp.raise_for_status()

        tmp = target.with_suffix(target.suffix + ".part")
        tmp.write_bytes(resp.content)
        os.replace(tmp, target)
        return str(target)

    def _try_download(self, url: str, target: Path) -> str:
        try:
            return self._download(url, target)
        except (requests.RequestException, OSError) as exc:
            logger.warning("Download of %s failed, keeping remote URL: %s", url, exc)
            return url

    def download_product_images(
        self, product: Dict[str, Any], progress: Optional[ProgressCallback] = None
    ) -> Dict[str, Any]:
        images = dict(product.get("images") or {})
        main = images.get("main")
        gallery = list(images.get("gallery") or [])
        total = (1 if main else 0) + len(gallery)
        done = 0
        pid = product["id"]

        if main:
            images["main"] = self._try_download(main, self.images_dir / f"product_{pid}_main{_ext(main, '.jpg')}")
            done += 1
            if progress:
                progress(done, total, main)

        local_gallery = []
        for i, url in enumerate(gallery):
            local_gallery.append(
                self._try_download(url, self.images_dir / f"product_{pid}_gallery_{i}{_ext(url, '.jpg')}")
            )
            done += 1
            if progress:
                progress(done, total, url)
        images["gallery"] = local_gallery

        return {**product, "images": images}

    def download_product_manuals(
        self, product: Dict[str, Any], progress: Optional[ProgressCallback] = None
    ) -> Dict[str, Any]:
        manuals = product.get("manuals") or []
        updated = []
        for i, manual in enumerate(manuals):
            url = manual.get("url")
            if url:
                local = self._try_download(url, self.manuals_dir / f"product_{product['id']}_manual_{i}.pdf")
                manual = {**manual, "url": local}
            updated.append(manual)
            if progress:
                progress(i + 1, len(manuals), url or "")
        return {**product, "manuals": updated}


def _ext(url: str, default: str) -> str:
    ext = os.path.splitext(urlparse(url).path)[1].lower()
    return ext if ext in (".jpg", ".jpeg", ".png", ".webp", ".gif") else default


def save_product_for_offline(
    api: CatalogApi,
    db: LocalDatabase,
    product_id: int,
    progress: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """Uloží produkt na serveru, stáhne ho i se soubory a zapíše do lokálního úložiště."""
    api.save_product(product_id)
    product = api.get_product(product_id)
    product = db.download_product_images(product, progress)
    product = db.download_product_manuals(product, progress)
    db.save_product_offline(product)
    return product


def remove_saved_product(api: CatalogApi, db: LocalDatabase, product_id: int) -> None:
    api.remove_saved_product(product_id)
    db.remove_offline_product(product_id)
