"""storefront - catalog, cart and checkout API."""

__version__ = "0.1.0"
