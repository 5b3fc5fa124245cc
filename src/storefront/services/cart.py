"""
Client-side shopping cart

A Cart belongs to exactly one client session. It is loaded once from a
key-value store and written back after every mutation, so the store always
holds the current contents under a single key.
"""
import json
import os
from pydantic import BaseModel, Field, TypeAdapter
from storefront.config import settings
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol
import logging

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "cart"


class KeyValueStore(Protocol):
    """Durable string storage owned by the client session"""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStore:
    """Process-local store, mostly useful for tests"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JSONFileStore:
    """Keeps all keys in one JSON document on disk"""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path) or os.path.getsize(self.path) == 0:
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, data: Dict[str, str]) -> None:
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class CartLine(BaseModel):
    """One product in the cart with the stock level it was offered at"""
    product_id: int
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    stock_quantity: int = Field(..., ge=0)
    image_url: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


_lines_adapter = TypeAdapter(List[CartLine])


def _clamp(quantity: int, stock_quantity: int) -> int:
    return min(max(1, quantity), stock_quantity)


class Cart:
    """Cart aggregate: add, remove, update quantity, clear"""

    def __init__(self, store: KeyValueStore, delivery_fee: Optional[float] = None):
        self._store = store
        self.delivery_fee = settings.delivery_fee if delivery_fee is None else delivery_fee
        self._lines: List[CartLine] = self._load()

    def _load(self) -> List[CartLine]:
        raw = self._store.get(CART_STORAGE_KEY)
        if not raw:
            return []
        try:
            return _lines_adapter.validate_json(raw)
        except ValueError as e:
            logger.warning(f"Discarding unreadable stored cart: {e}")
            self._store.delete(CART_STORAGE_KEY)
            return []

    def _save(self) -> None:
        self._store.set(CART_STORAGE_KEY, _lines_adapter.dump_json(self._lines).decode())

    def _find(self, product_id: int) -> Optional[CartLine]:
        for line in self._lines:
            if line.product_id == product_id:
                return line
        return None

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def add(self, product: Mapping[str, Any], quantity: int = 1) -> CartLine:
        """
        Add a catalog product, merging with an existing line

        `product` is a catalog entry (id, name, price, stock_quantity and
        optionally image_url). The resulting quantity is clamped to
        [1, stock].
        """
        stock_quantity = int(product["stock_quantity"])
        if stock_quantity < 1:
            raise ValueError(f"{product['name']} is out of stock")

        line = self._find(product["id"])
        if line:
            line.quantity = _clamp(line.quantity + quantity, stock_quantity)
            line.stock_quantity = stock_quantity
        else:
            line = CartLine(
                product_id=product["id"],
                name=product["name"],
                price=product["price"],
                quantity=_clamp(quantity, stock_quantity),
                stock_quantity=stock_quantity,
                image_url=product.get("image_url"),
            )
            self._lines.append(line)

        self._save()
        return line

    def remove(self, product_id: int) -> None:
        self._lines = [line for line in self._lines if line.product_id != product_id]
        self._save()

    def update_quantity(
        self, product_id: int, quantity: int, stock_quantity: Optional[int] = None
    ) -> Optional[CartLine]:
        """Set a line's quantity; anything below 1 removes the line"""
        line = self._find(product_id)
        if line is None:
            return None

        if quantity < 1:
            self.remove(product_id)
            return None

        if stock_quantity is not None:
            line.stock_quantity = stock_quantity
        if line.stock_quantity < 1:
            self.remove(product_id)
            return None

        line.quantity = _clamp(quantity, line.stock_quantity)
        self._save()
        return line

    def clear(self) -> None:
        self._lines = []
        self._store.delete(CART_STORAGE_KEY)

    @property
    def subtotal(self) -> float:
        return round(sum(line.line_total for line in self._lines), 2)

    @property
    def delivery(self) -> float:
        return self.delivery_fee if self._lines else 0.0

    @property
    def total(self) -> float:
        return round(self.subtotal + self.delivery, 2)

    def to_order_payload(
        self,
        billing_info: Mapping[str, Any],
        payment_method: str,
        payment_details: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Checkout request body for placing this cart as an order"""
        if self.is_empty:
            raise ValueError("Cart is empty")

        payload = {
            "billing_info": dict(billing_info),
            "payment_method": payment_method,
            "items": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "quantity": line.quantity,
                    "price": line.price,
                }
                for line in self._lines
            ],
            "subtotal": self.subtotal,
            "delivery": self.delivery,
            "total": self.total,
        }
        if payment_details is not None:
            payload["payment_details"] = dict(payment_details)
        return payload
