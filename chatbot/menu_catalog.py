# chatbot/menu_catalog.py
"""
Menu Catalog

Static mapping from item id (1..N) to name and unit price in NGN.
Loaded once at import time and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class MenuItem:
    name: str
    price: int


MENU: Mapping[int, MenuItem] = MappingProxyType(
    {
        1: MenuItem("Jollof Rice", 2500),
        2: MenuItem("Fried Rice", 2500),
        3: MenuItem("White Rice and Stew", 2000),
        4: MenuItem("Beans and Plantain", 1800),
        5: MenuItem("Pounded Yam and Egusi", 3500),
        6: MenuItem("Amala and Ewedu", 3000),
        7: MenuItem("Eba and Okra Soup", 2800),
        8: MenuItem("Pepper Soup", 3200),
        9: MenuItem("Suya Platter", 4000),
        10: MenuItem("Bread and Egg", 1200),
        11: MenuItem("Moi Moi", 1000),
        12: MenuItem("Fried Plantain (Dodo)", 1000),
        13: MenuItem("Chicken and Chips", 4500),
        14: MenuItem("Yam Porridge", 2200),
        15: MenuItem("Ponmo Stew", 2200),
    }
)
