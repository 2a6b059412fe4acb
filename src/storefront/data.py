"""Seed catalog loaded into an empty product repository."""

from typing import Any

_SHIPPING_INFO = "Free shipping on orders over $50"


def _images(stem: str) -> list[str]:
    return [f"/products/{stem}-{n}.jpg" for n in (1, 2, 3)]


CATEGORIES: list[dict[str, Any]] = [
    {
        "id": "cat-1",
        "name": "Electronics",
        "slug": "electronics",
        "description": "Latest electronic gadgets and devices",
        "parent_id": None,
        "image_url": "/categories/electronics.jpg",
    },
    {
        "id": "cat-2",
        "name": "Computers",
        "slug": "computers",
        "description": "Laptops, desktops, and accessories",
        "parent_id": "cat-1",
        "image_url": "/categories/computers.jpg",
    },
    {
        "id": "cat-3",
        "name": "Fashion",
        "slug": "fashion",
        "description": "Clothing and accessories",
        "parent_id": None,
        "image_url": "/categories/fashion.jpg",
    },
    {
        "id": "cat-4",
        "name": "Home & Garden",
        "slug": "home-garden",
        "description": "Everything for your home",
        "parent_id": None,
        "image_url": "/categories/home.jpg",
    },
]

PRODUCTS: list[dict[str, Any]] = [
    {
        "id": "prod-1",
        "name": "Premium Wireless Headphones",
        "slug": "premium-wireless-headphones",
        "description": "High-quality wireless headphones with active noise cancellation, "
        "30-hour battery life, and premium sound quality.",
        "price": "299.99",
        "compare_at_price": "399.99",
        "category_id": "cat-1",
        "images": _images("headphones"),
        "stock": 45,
        "sku": "HEAD-001",
        "rating": 4.5,
        "review_count": 128,
        "tags": ["audio", "wireless", "premium"],
        "is_featured": True,
        "is_trending": True,
    },
    {
        "id": "prod-2",
        "name": "Ultra-Wide Gaming Monitor",
        "slug": "ultra-wide-gaming-monitor",
        "description": "34-inch curved ultra-wide gaming monitor with 144Hz refresh rate, "
        "1ms response time, and QHD resolution.",
        "price": "599.99",
        "category_id": "cat-2",
        "images": _images("monitor"),
        "stock": 23,
        "sku": "MON-001",
        "rating": 4.8,
        "review_count": 89,
        "tags": ["gaming", "monitor", "electronics"],
        "is_featured": True,
        "is_trending": True,
    },
    {
        "id": "prod-3",
        "name": "Mechanical Gaming Keyboard",
        "slug": "mechanical-gaming-keyboard",
        "description": "RGB mechanical keyboard with Cherry MX switches, programmable keys, "
        "and durable construction.",
        "price": "149.99",
        "compare_at_price": "199.99",
        "category_id": "cat-2",
        "images": _images("keyboard"),
        "stock": 67,
        "sku": "KEY-001",
        "rating": 4.6,
        "review_count": 203,
        "tags": ["gaming", "keyboard", "rgb"],
        "is_trending": True,
    },
    {
        "id": "prod-4",
        "name": "Wireless Gaming Mouse",
        "slug": "wireless-gaming-mouse",
        "description": "High-precision wireless gaming mouse with adjustable DPI, RGB lighting, "
        "and ergonomic design.",
        "price": "79.99",
        "category_id": "cat-2",
        "images": _images("mouse"),
        "stock": 92,
        "sku": "MOUSE-001",
        "rating": 4.4,
        "review_count": 156,
        "tags": ["gaming", "mouse", "wireless"],
        "is_trending": True,
    },
    {
        "id": "prod-5",
        "name": "Smart Watch Pro",
        "slug": "smart-watch-pro",
        "description": "Advanced smartwatch with fitness tracking, heart rate monitor, GPS, "
        "and 7-day battery life.",
        "price": "399.99",
        "compare_at_price": "499.99",
        "category_id": "cat-1",
        "images": _images("watch"),
        "stock": 34,
        "sku": "WATCH-001",
        "rating": 4.7,
        "review_count": 312,
        "tags": ["smartwatch", "fitness", "wearable"],
        "is_featured": True,
    },
    {
        "id": "prod-6",
        "name": "Premium Cotton T-Shirt",
        "slug": "premium-cotton-tshirt",
        "description": "High-quality 100% organic cotton t-shirt with comfortable fit and modern design.",
        "price": "29.99",
        "category_id": "cat-3",
        "images": _images("tshirt"),
        "stock": 150,
        "sku": "SHIRT-001",
        "rating": 4.3,
        "review_count": 87,
        "tags": ["clothing", "fashion", "cotton"],
    },
    {
        "id": "prod-7",
        "name": "Designer Sunglasses",
        "slug": "designer-sunglasses",
        "description": "Stylish designer sunglasses with UV protection and premium materials.",
        "price": "159.99",
        "compare_at_price": "249.99",
        "category_id": "cat-3",
        "images": _images("sunglasses"),
        "stock": 42,
        "sku": "SUN-001",
        "rating": 4.6,
        "review_count": 64,
        "tags": ["fashion", "sunglasses", "accessories"],
        "is_featured": True,
    },
    {
        "id": "prod-8",
        "name": "Smart Home Hub",
        "slug": "smart-home-hub",
        "description": "Central control hub for all your smart home devices with voice control support.",
        "price": "129.99",
        "category_id": "cat-4",
        "images": _images("hub"),
        "stock": 56,
        "sku": "HUB-001",
        "rating": 4.5,
        "review_count": 178,
        "tags": ["smart home", "hub", "automation"],
        "is_trending": True,
    },
    {
        "id": "prod-9",
        "name": "Robot Vacuum Cleaner",
        "slug": "robot-vacuum-cleaner",
        "description": "Intelligent robot vacuum with mapping technology, automatic charging, "
        "and app control.",
        "price": "449.99",
        "compare_at_price": "599.99",
        "category_id": "cat-4",
        "images": _images("vacuum"),
        "stock": 18,
        "sku": "VAC-001",
        "rating": 4.7,
        "review_count": 234,
        "tags": ["smart home", "cleaning", "robot"],
        "is_featured": True,
    },
    {
        "id": "prod-10",
        "name": "Portable Bluetooth Speaker",
        "slug": "portable-bluetooth-speaker",
        "description": "Waterproof portable speaker with 360-degree sound, 12-hour battery, "
        "and deep bass.",
        "price": "89.99",
        "category_id": "cat-1",
        "images": _images("speaker"),
        "stock": 73,
        "sku": "SPEAK-001",
        "rating": 4.4,
        "review_count": 145,
        "tags": ["audio", "bluetooth", "portable"],
    },
    {
        "id": "prod-11",
        "name": "USB-C Laptop Charger",
        "slug": "usb-c-laptop-charger",
        "description": "Universal 65W USB-C charger compatible with most laptops and devices.",
        "price": "39.99",
        "category_id": "cat-2",
        "images": _images("charger"),
        "stock": 120,
        "sku": "CHRG-001",
        "rating": 4.2,
        "review_count": 98,
        "tags": ["charger", "usb-c", "accessories"],
    },
    {
        "id": "prod-12",
        "name": "Leather Wallet",
        "slug": "leather-wallet",
        "description": "Genuine leather wallet with RFID protection and multiple card slots.",
        "price": "49.99",
        "category_id": "cat-3",
        "images": _images("wallet"),
        "stock": 85,
        "sku": "WALL-001",
        "rating": 4.5,
        "review_count": 76,
        "tags": ["fashion", "leather", "wallet"],
    },
]

for _product in PRODUCTS:
    _product.setdefault("shipping_info", _SHIPPING_INFO)

REVIEWS: list[dict[str, Any]] = [
    {
        "id": "rev-1",
        "product_id": "prod-1",
        "user_id": "user-1",
        "user_name": "John Doe",
        "rating": 5,
        "title": "Excellent sound quality!",
        "comment": "These headphones are amazing. The noise cancellation works perfectly "
        "and the battery life is incredible.",
        "verified": True,
        "helpful": 23,
    },
    {
        "id": "rev-2",
        "product_id": "prod-1",
        "user_id": "user-2",
        "user_name": "Jane Smith",
        "rating": 4,
        "title": "Great but a bit pricey",
        "comment": "Love the sound quality and comfort, but I think the price is a bit high "
        "for what you get.",
        "verified": True,
        "helpful": 15,
    },
    {
        "id": "rev-3",
        "product_id": "prod-2",
        "user_id": "user-3",
        "user_name": "Mike Johnson",
        "rating": 5,
        "title": "Perfect for gaming!",
        "comment": "The ultra-wide screen is a game changer. Colors are vibrant and the "
        "refresh rate is smooth.",
        "verified": True,
        "helpful": 34,
    },
]
