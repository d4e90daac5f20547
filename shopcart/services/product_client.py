# shopcart/services/product_client.py
import requests

from shopcart.domain.product import ProductSnapshot
from shopcart.utils.retry import http_retry
from shopcart.utils.settings import PRODUCT_SERVICE_URL
from shopcart.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """
    Dostep do katalogu produktow (product-service) - tylko odczyt.
    404 oznacza brak produktu, pozostale bledy HTTP sa ponawiane i zglaszane.
    """

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def get_product(self, product_id: int) -> ProductSnapshot | None:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return ProductSnapshot.from_payload(resp.json())
