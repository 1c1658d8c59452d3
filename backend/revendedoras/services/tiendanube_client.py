"""
Cliente para la API REST de Tiendanube (catálogo de productos y categorías).

- Autenticación: header "Authentication: bearer <access_token>" + User-Agent propio.
- Paginación: page + per_page (máx. 200); una página más corta que per_page es la última.
- Cada página se reintenta con back-off lineal; si se agotan los intentos se lanza
  TiendanubeError y la sincronización se aborta antes de tocar el caché.

Ref: https://tiendanube.github.io/api-documentation/
"""
import logging
import time
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.tiendanube.com/v1"
MAX_PER_PAGE = 200


class TiendanubeError(Exception):
    """Error de configuración, red o respuesta no-2xx de Tiendanube."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TiendanubeClient:
    """
    Cliente de solo lectura del catálogo de una tienda.
    Credenciales: store_id (user_id de la app) y access_token obtenido por OAuth.
    """

    def __init__(
        self,
        store_id: Optional[str],
        access_token: Optional[str],
        api_base: Optional[str] = None,
        user_agent: Optional[str] = None,
        per_page: int = MAX_PER_PAGE,
        max_pages: int = 100,
        page_delay: float = 0.5,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: int = 30,
    ):
        self.store_id = (store_id or "").strip()
        self.access_token = (access_token or "").strip()
        self.api_base = (api_base or DEFAULT_BASE_URL).rstrip("/")
        self.user_agent = user_agent or "Nadin App"
        self.per_page = min(per_page, MAX_PER_PAGE)
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "TiendanubeClient":
        """Construye el cliente desde app.config (claves TN_*)."""
        return cls(
            store_id=config.get("TN_STORE_ID"),
            access_token=config.get("TN_ACCESS_TOKEN"),
            api_base=config.get("TN_API_BASE"),
            user_agent=config.get("TN_USER_AGENT"),
            per_page=config.get("TN_PER_PAGE", MAX_PER_PAGE),
            max_pages=config.get("TN_MAX_PAGES", 100),
            page_delay=config.get("TN_PAGE_DELAY", 0.5),
        )

    def is_configured(self) -> bool:
        return bool(self.store_id and self.access_token and self.api_base)

    def _headers(self) -> dict:
        return {
            "Authentication": f"bearer {self.access_token}",
            "User-Agent": self.user_agent,
            "Content-Type": "application/json",
        }

    def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET {api_base}/{store_id}{endpoint}. Devuelve el JSON o lanza TiendanubeError."""
        if not self.is_configured():
            raise TiendanubeError(
                "Configuración de Tiendanube incompleta (TN_STORE_ID, TN_ACCESS_TOKEN, TN_API_BASE)"
            )
        url = f"{self.api_base}/{self.store_id}{endpoint}"
        logger.debug("TN request: %s %s", url, params or {})
        try:
            resp = requests.get(url, headers=self._headers(), params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TiendanubeError(f"TN API request error: {e}") from e

        if not resp.ok:
            raise TiendanubeError(
                f"TN API Error: {resp.status_code} - {resp.text[:500]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise TiendanubeError(f"TN API respuesta inválida: {e}") from e

    def _request_with_retry(self, endpoint: str, params: Dict[str, Any], what: str) -> Any:
        for attempt in range(1, self.max_retries + 1):
            try:
                return self._request(endpoint, params)
            except TiendanubeError as e:
                if attempt == self.max_retries:
                    logger.error("%s falló después de %d intentos: %s", what, attempt, e)
                    raise
                wait = self.retry_delay * attempt
                logger.warning(
                    "Error en %s (intento %d/%d): %s. Reintentando en %.1fs",
                    what, attempt, self.max_retries, e, wait,
                )
                time.sleep(wait)

    def _paginate(self, endpoint: str, params: Dict[str, Any], label: str) -> List[dict]:
        items: List[dict] = []
        page = 1
        while page <= self.max_pages:
            page_params = {**params, "page": page, "per_page": self.per_page}
            batch = self._request_with_retry(endpoint, page_params, f"{label} página {page}")
            if not isinstance(batch, list):
                raise TiendanubeError(f"{label} página {page}: se esperaba una lista")
            if not batch:
                break
            items.extend(batch)
            logger.info("%s página %d: %d (total %d)", label, page, len(batch), len(items))
            if len(batch) < self.per_page:
                break
            page += 1
            if self.page_delay:
                time.sleep(self.page_delay)
        return items

    def get_all_products(self, only_published: bool = True, sort_by: Optional[str] = None) -> List[dict]:
        """GET /products paginado. Por política solo se sincronizan productos publicados."""
        params: Dict[str, Any] = {}
        if only_published:
            params["published"] = "true"
        if sort_by:
            params["sort_by"] = sort_by
        products = self._paginate("/products", params, "productos")
        logger.info("Tiendanube: %d productos obtenidos", len(products))
        return products

    def get_all_categories(self) -> List[dict]:
        """GET /categories paginado (cada categoría trae parent o 0/null si es raíz)."""
        categories = self._paginate("/categories", {}, "categorías")
        logger.info("Tiendanube: %d categorías obtenidas", len(categories))
        return categories

    def get_best_selling_products(self, limit: int = 50) -> List[dict]:
        """Productos publicados ordenados por el ranking de ventas de Tiendanube."""
        products: List[dict] = []
        page = 1
        while len(products) < limit and page <= 5:
            per_page = min(limit, MAX_PER_PAGE)
            batch = self._request_with_retry(
                "/products",
                {"page": page, "per_page": per_page, "published": "true", "sort_by": "best-selling"},
                f"más vendidos página {page}",
            )
            if not batch:
                break
            products.extend(batch)
            if len(batch) < per_page:
                break
            page += 1
        return products[:limit]

    def get_product(self, product_id: str) -> dict:
        return self._request(f"/products/{product_id}")
