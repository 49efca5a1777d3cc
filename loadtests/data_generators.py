"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the order validation rules
(email pattern, consent, line totals) and match the field names expected
by the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker(["fr_FR", "en_US"])

CITIES = ["Casablanca", "Rabat", "Marrakech", "Fes", "Tangier", "Agadir"]

PRODUCTS = [
    {"product_id": "prod-argan-100", "sku": "ARG-100", "en": "Argan oil 100ml", "fr": "Huile d'argan 100ml", "price": 120.0},
    {"product_id": "prod-ghassoul", "sku": "GHS-250", "en": "Ghassoul clay", "fr": "Argile ghassoul", "price": 45.0},
    {"product_id": "prod-savon-noir", "sku": "SVN-200", "en": "Black soap", "fr": "Savon noir", "price": 35.5},
    {"product_id": "prod-rose-water", "sku": "RSW-150", "en": "Rose water", "fr": "Eau de rose", "price": 60.0},
    {"product_id": "prod-amlou", "sku": "AML-300", "en": "Amlou spread", "fr": "Amlou", "price": 89.99},
]


def valid_email() -> str:
    """Generate emails that pass the order email pattern (word chars, dots, 2-3 letter TLD)."""
    local = "".join(ch for ch in fake.user_name() if ch.isalnum())[:20] or "buyer"
    return f"{local}.{uuid.uuid4().hex[:4]}@example.com"


def valid_phone() -> str:
    """Generate Moroccan mobile numbers."""
    return f"+2126{random.randint(10000000, 99999999)}"


def address_data() -> dict:
    return {
        "street": fake.street_address()[:255],
        "city": random.choice(CITIES),
        "postal_code": str(random.randint(10000, 99999)),
        "country": "Morocco",
    }


def order_item_data(product: dict | None = None) -> dict:
    product = product or random.choice(PRODUCTS)
    quantity = random.randint(1, 4)
    return {
        "product_id": product["product_id"],
        "name": {"en": product["en"], "fr": product["fr"]},
        "sku": product["sku"],
        "quantity": quantity,
        "unit_price": product["price"],
        "total_price": round(quantity * product["price"], 2),
    }


def order_data(email: str | None = None, payment_method: str | None = None) -> dict:
    """Generate a PlaceOrderRequest payload with 1-3 distinct products."""
    products = random.sample(PRODUCTS, k=random.randint(1, 3))
    return {
        "customer": {
            "first_name": fake.first_name()[:100],
            "last_name": fake.last_name()[:100],
            "email": email or valid_email(),
            "phone": valid_phone(),
        },
        "address": address_data(),
        "items": [order_item_data(product) for product in products],
        "shipping": random.choice([0.0, 20.0, 35.0]),
        "discount": random.choice([0.0, 0.0, 10.0]),
        "payment_method": payment_method or random.choice(["cash_on_delivery", "cash_on_delivery", "bank_transfer"]),
        "shipping_method": random.choice(["standard", "express"]),
        "consent_given": True,
        "language": random.choice(["en", "fr", "ar"]),
    }


def tracking_data() -> dict:
    return {"tracking_number": f"AMANA-{uuid.uuid4().hex[:10].upper()}"}
