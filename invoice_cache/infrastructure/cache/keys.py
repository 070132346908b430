"""
Cache Key Naming Scheme

Single place for cache key construction. Pure functions, no I/O.

Layout:
    user:{owner}
    clients:{owner}:p{page}:l{limit}:s{search}
    client:{owner}:{client_id}
    products:{owner}:p{page}:l{limit}:s{search}:c{category}
    product:{owner}:{product_id}
    invoices:{owner}:p{page}:l{limit}:s{search}:st{status}:c{client_id}
    invoice:{owner}:{invoice_id}
    dashboard:{owner}
    settings:{owner}
    session:{token}

List families are plural and singletons singular, so clearing
``clients:{owner}:*`` never removes ``client:{owner}:{id}``. List filters are
always appended in the order shown.

Every caller-supplied segment has ``%`` and ``:`` percent-encoded, so a
search string such as ``a:l5`` cannot forge another key's qualifiers.
E-mail owner ids contain neither character and appear unchanged.
"""

from invoice_cache.core.config.constants import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_LIMIT,
    KEY_SEPARATOR,
    EntityFamily,
)
from invoice_cache.infrastructure.cache.patterns import escape_glob


def encode_segment(value: object) -> str:
    """Render one key segment, percent-encoding ``%`` and ``:``."""
    text = "" if value is None else str(value)
    return text.replace("%", "%25").replace(KEY_SEPARATOR, "%3A")


def _join(family: EntityFamily, *segments: str) -> str:
    return KEY_SEPARATOR.join([family.value, *segments])


class CacheKeys:
    """
    Deterministic key builders for every cached read.

    Usage:
        key = CacheKeys.clients("ann@example.com", page=2, search="acme")
        # 'clients:ann@example.com:p2:l10:sacme'
    """

    @staticmethod
    def user(owner_id: str) -> str:
        return _join(EntityFamily.USER, encode_segment(owner_id))

    @staticmethod
    def clients(
        owner_id: str, page: int = DEFAULT_PAGE, limit: int = DEFAULT_PAGE_LIMIT, search: str = ""
    ) -> str:
        return _join(
            EntityFamily.CLIENTS,
            encode_segment(owner_id),
            f"p{page}",
            f"l{limit}",
            f"s{encode_segment(search)}",
        )

    @staticmethod
    def client(owner_id: str, client_id: str) -> str:
        return _join(EntityFamily.CLIENT, encode_segment(owner_id), encode_segment(client_id))

    @staticmethod
    def products(
        owner_id: str,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_PAGE_LIMIT,
        search: str = "",
        category: str = "",
    ) -> str:
        return _join(
            EntityFamily.PRODUCTS,
            encode_segment(owner_id),
            f"p{page}",
            f"l{limit}",
            f"s{encode_segment(search)}",
            f"c{encode_segment(category)}",
        )

    @staticmethod
    def product(owner_id: str, product_id: str) -> str:
        return _join(EntityFamily.PRODUCT, encode_segment(owner_id), encode_segment(product_id))

    @staticmethod
    def invoices(
        owner_id: str,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_PAGE_LIMIT,
        search: str = "",
        status: str = "",
        client_id: str = "",
    ) -> str:
        return _join(
            EntityFamily.INVOICES,
            encode_segment(owner_id),
            f"p{page}",
            f"l{limit}",
            f"s{encode_segment(search)}",
            f"st{encode_segment(status)}",
            f"c{encode_segment(client_id)}",
        )

    @staticmethod
    def invoice(owner_id: str, invoice_id: str) -> str:
        return _join(EntityFamily.INVOICE, encode_segment(owner_id), encode_segment(invoice_id))

    @staticmethod
    def dashboard(owner_id: str) -> str:
        return _join(EntityFamily.DASHBOARD, encode_segment(owner_id))

    @staticmethod
    def settings(owner_id: str) -> str:
        return _join(EntityFamily.SETTINGS, encode_segment(owner_id))

    @staticmethod
    def session(session_token: str) -> str:
        return _join(EntityFamily.SESSION, encode_segment(session_token))

    # -------------------------------------------------------------------------
    # Invalidation patterns
    # -------------------------------------------------------------------------

    @staticmethod
    def list_pattern(family: EntityFamily | str, owner_id: str) -> str:
        """Glob matching every cached listing of ``family`` for one owner."""
        family = EntityFamily(family)
        return f"{family.value}:{escape_glob(encode_segment(owner_id))}:*"

    @staticmethod
    def owner_pattern(owner_id: str) -> str:
        """
        Glob matching every qualified key of one owner, in any family.

        Keys with no segment after the owner (user, dashboard, settings) do
        not match and must be deleted explicitly.
        """
        return f"*:{escape_glob(encode_segment(owner_id))}:*"
