"""
Print the full pricing trace for a sample cart.

Usage:
    python scripts/debug_quote.py
"""
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from quote_tool.engine import QuoteEngine
from quote_tool.services.cart_store import CartStore

def debug():
    engine = QuoteEngine()
    
    print("Loaded Rate Table:")
    print(engine.rate_table)
    for product in engine.list_products():
        print(f"  {product['label']}: {', '.join(product['tiers'])}")
    
    cart = CartStore.from_settings(engine.settings)
    cart.add("Desktop", quantity=30, markup_percent=15, tax_percent=13)
    cart.add("VMs", quantity=5, markup_percent=15, tax_percent=13)
    cart.add("Xcel Advance cloud", quantity=0, markup_percent=10, tax_percent=13, platform="Windows")
    
    print("\n--- Pricing sample cart (10% discount) ---")
    result = engine.quote_cart(cart, discount_percent=10)
    
    for line in result.lines:
        print(f"\n{line.product.label} x{line.quantity} [{line.tier}]")
        print(line.get_trace_text())
    
    print("\nQuote:")
    print(result.get_trace_text())
    
    if result.warnings:
        print("\nWarnings:")
        for warning in result.warnings:
            print(f"  {warning}")
    
    print("\nExport:")
    print(result.to_dataframe().to_string(index=False))

if __name__ == "__main__":
    debug()
