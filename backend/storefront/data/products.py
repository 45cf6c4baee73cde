"""Built-in catalog served when the hosted database cannot be reached.

Rows use the same column names as `v_productos_publicos`.
"""

from typing import List

from storefront.models.product import Product

STATIC_ROWS = [
    {
        "id": "1",
        "nombre": "Gorila Rainbow",
        "categoria": "flores",
        "precio_onza": 3200,
        "precio_media_onza": 1700,
        "precio_gramo": 120,
        "disponible": True,
    },
    {
        "id": "2",
        "nombre": "Purple Haze",
        "categoria": "flores",
        "precio_onza": 2800,
        "precio_media_onza": 1500,
        "precio_gramo": 105,
        "disponible": True,
    },
    {
        "id": "3",
        "nombre": "OG Kush",
        "categoria": "flores",
        "precio_onza": 3500,
        "precio_media_onza": 1850,
        "precio_gramo": 130,
        "disponible": False,
    },
    {
        "id": "4",
        "nombre": "Pre-Roll Premium Mix",
        "categoria": "pre-rolls",
        "precio_unidad": 75,
        "disponible": True,
    },
    {
        "id": "5",
        "nombre": "Grinder Glass Pro",
        "categoria": "parafernalia",
        "precio_unidad": 80,
        "precio_pieza": 0,
        "disponible": True,
    },
    {
        "id": "6",
        "nombre": "White Widow",
        "categoria": "flores",
        "precio_onza": 3000,
        "precio_media_onza": 1600,
        "precio_gramo": 110,
        "disponible": True,
    },
    {
        "id": "7",
        "nombre": "Papel Rizla Silver",
        "categoria": "parafernalia",
        "precio_unidad": 45,
        "precio_pieza": 15,
        "disponible": True,
    },
]


def static_products() -> List[Product]:
    return [Product.from_row(row) for row in STATIC_ROWS]
