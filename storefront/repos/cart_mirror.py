# storefront/repos/cart_mirror.py
import asyncio
import json
from pathlib import Path
from urllib.parse import quote

from storefront.domain.adapters import normalize_cart_document
from storefront.domain.schemas import Cart
from storefront.utils.settings import CART_MIRROR_DIR
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartMirror:
    """
    Lokalna kopia koszyka (plik cart_{userId}.json).
    Zawsze cien ostatniego dobrego stanu; czytana tylko gdy zdalny store
    jest niedostepny albo nie ma jeszcze dokumentu.
    """

    def __init__(self, directory: str | Path | None = None):
        self.directory = Path(directory or CART_MIRROR_DIR)

    def path_for(self, user_id: str) -> Path:
        return self.directory / f"cart_{quote(user_id, safe='')}.json"

    async def read(self, user_id: str) -> Cart | None:
        return await asyncio.to_thread(self._read, user_id)

    async def write(self, cart: Cart) -> None:
        await asyncio.to_thread(self._write, cart)

    def _read(self, user_id: str) -> Cart | None:
        path = self.path_for(user_id)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            #uszkodzony mirror = brak mirrora
            logger.warning(f"Unreadable cart mirror {path}: {e}")
            return None
        if not isinstance(raw, dict):
            return None
        return normalize_cart_document(user_id, raw)

    def _write(self, cart: Cart) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(cart.user_id)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(cart.model_dump_json(by_alias=True), encoding="utf-8")
        tmp.replace(path)
