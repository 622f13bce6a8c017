"""
Shared API state - one engine and one session cart per process.
"""
from ..engine import QuoteEngine
from ..services.cart_store import CartStore

engine = QuoteEngine()
cart = CartStore.from_settings(engine.settings)
