from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from restaurant_directory.app import app
from restaurant_directory.monitoring.store import clear_events
from restaurant_directory.store.data_store import RestaurantStore, get_store

SAMPLE_RESTAURANTS = [
    {
        "id": "r1",
        "name": "Taquería El Güero",
        "description": "Tacos al pastor y de suadero",
        "cuisine_type": "Mexicana",
        "category": ["Tacos", "Casual"],
        "tags": ["tacos", "pastor"],
        "neighborhood": "Del Valle",
        "city": "Ciudad de México",
        "longitude": -99.1710,
        "latitude": 19.3850,
        "price_level": 1,
        "avg_cost_per_person": 120,
        "rating": 4.5,
        "total_reviews": 320,
        "delivery_available": True,
        "takeout_available": True,
        "payment_cash": True,
        "payment_card": False,
        "payment_digital": True,
        "created_at": "2024-01-10T12:00:00Z",
    },
    {
        "id": "r2",
        "name": "Pujol",
        "description": "Menú de degustación de alta cocina",
        "cuisine_type": "Gourmet",
        "category": ["Fine Dining"],
        "tags": ["degustación", "mole"],
        "neighborhood": "Polanco",
        "city": "Ciudad de México",
        "longitude": -99.1960,
        "latitude": 19.4320,
        "price_level": 4,
        "avg_cost_per_person": 2800,
        "rating": 4.9,
        "total_reviews": 1850,
        "wifi_available": True,
        "reservations_accepted": True,
        "payment_cash": False,
        "payment_card": True,
        "payment_digital": True,
        "created_at": "2023-11-02T10:00:00Z",
    },
    {
        "id": "r3",
        "name": "Contramar",
        "description": "Mariscos frescos y pescado a la talla",
        "cuisine_type": "Mariscos",
        "category": ["Mariscos", "Familiar"],
        "tags": ["pescado", "tostadas de atún"],
        "neighborhood": "Roma Norte",
        "city": "Ciudad de México",
        "longitude": -99.1660,
        "latitude": 19.4190,
        "price_level": 3,
        "avg_cost_per_person": 650,
        "rating": 4.7,
        "total_reviews": 1420,
        "wifi_available": True,
        "outdoor_seating": True,
        "reservations_accepted": True,
        "payment_cash": True,
        "payment_card": True,
        "created_at": "2023-12-05T09:30:00Z",
    },
    {
        "id": "r4",
        "name": "La Docena Oyster Bar",
        "description": "Ostiones y cortes a la parrilla",
        "cuisine_type": "Mariscos",
        "category": ["Mariscos", "Bar"],
        "neighborhood": "Providencia",
        "city": "Guadalajara",
        "longitude": -103.3920,
        "latitude": 20.6880,
        "price_level": 3,
        "avg_cost_per_person": 700,
        "rating": 4.6,
        "total_reviews": 760,
        "payment_cash": True,
        "payment_card": True,
        "created_at": "2024-02-01T14:00:00Z",
    },
    {
        "id": "r5",
        "name": "Trattoria Casa Nuova",
        "description": "Pasta fresca y pizzas al horno de leña",
        "cuisine_type": "Italiana",
        "category": ["Pizzería", "Familiar"],
        "tags": ["pasta", "pizza"],
        "neighborhood": "Condesa",
        "city": "Ciudad de México",
        "longitude": -99.1730,
        "latitude": 19.4120,
        "price_level": 2,
        "avg_cost_per_person": 420,
        "rating": 4.1,
        "total_reviews": 540,
        "delivery_available": True,
        "wifi_available": True,
        "payment_cash": True,
        "payment_card": True,
        "created_at": "2024-03-10T13:00:00Z",
    },
    {
        "id": "r6",
        "name": "El Rey del Cabrito",
        "description": "Cabrito y carnes asadas norteñas",
        "cuisine_type": "Parrilla",
        "category": ["Parrilla", "Tradicional"],
        "neighborhood": "Centro",
        "city": "Monterrey",
        "longitude": -100.3090,
        "latitude": 25.6690,
        "price_level": 3,
        "avg_cost_per_person": 550,
        "rating": 4.4,
        "total_reviews": 890,
        "payment_cash": True,
        "payment_card": True,
        "created_at": "2023-08-20T12:00:00Z",
    },
    {
        "id": "r7",
        "name": "Forever Vegano",
        "description": "Tacos y comida mexicana 100% vegetal",
        "cuisine_type": "Vegana",
        "category": ["Vegano", "Saludable"],
        "tags": ["vegano"],
        "neighborhood": "Roma Norte",
        "city": "Ciudad de México",
        "longitude": -99.1600,
        "latitude": 19.4180,
        "price_level": 2,
        "avg_cost_per_person": 280,
        "rating": 4.5,
        "total_reviews": 610,
        "delivery_available": True,
        "payment_cash": True,
        "payment_card": True,
        "payment_digital": True,
        "created_at": "2024-04-05T09:00:00Z",
    },
    {
        "id": "r8",
        "name": "Café Sin Datos",
        "cuisine_type": "Café",
        "category": ["Cafetería"],
        "city": "Puebla",
        "price_level": 1,
        "total_reviews": 0,
        "created_at": "2024-05-01T07:00:00Z",
    },
]

# Roma Norte, Ciudad de México
CDMX_CENTER = {"longitude": "-99.1650", "latitude": "19.4190"}


@pytest.fixture
def store() -> RestaurantStore:
    return RestaurantStore.from_records(SAMPLE_RESTAURANTS)


@pytest.fixture
def client(store: RestaurantStore):
    clear_events()
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
