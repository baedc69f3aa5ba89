"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that several features use (settings,
logging, errors, DB wiring, IP helpers, the ipinfo client). Keep
feature-specific SQL and business logic in the corresponding feature
package (e.g. `history/`).
"""
