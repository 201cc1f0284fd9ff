"""
Product Catalog Backend — API Routes Package
==============================================

Route Inventory:
    - health.py:    GET /health, GET /api/status
    - metrics.py:   GET /metrics
    - products.py:  /api/products CRUD
    - client.py:    built frontend + SPA fallback (optional)

Routes stay thin: they extract request data, call a service, and shape the
response. Business logic lives in services.
"""
