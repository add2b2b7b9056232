"""
Example: Using the Nasdaq Nordic screener provider

This example fetches the full Nasdaq Nordic main-market listing page by page
and prints a short summary.
"""
import logging

from nordic_stocks.providers import HttpTransport, NasdaqScreenerProvider
from nordic_stocks.standardize import quotes_to_frame, summarize_frame

logging.basicConfig(level=logging.DEBUG)

provider = NasdaqScreenerProvider(transport=HttpTransport(timeout_seconds=30, max_retries=3))

print(f"Provider: {provider.name}\n")

result = provider.fetch()
print("=== Listing ===")
print(f"Stocks: {len(result)}")
print(f"Pages fetched: {result.pages_fetched} (reported total: {result.total_pages})")
print(f"Stop reason: {result.stop_reason.value}\n")

df = quotes_to_frame(result)
print("=== Summary ===")
print(summarize_frame(df))
print(f"\nSample:\n{df.head()}")
