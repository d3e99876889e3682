"""
TrackCode Backend — API Routes Package
=========================================

Route Inventory:
    - clients.py:    POST /api/clients, GET /api/clients/{id},
                     PUT /api/clients/{id}/prefix
    - prefixes.py:   GET /api/prefixes/suggest, GET /api/prefixes/check,
                     POST /api/prefixes/backfill
    - shipments.py:  POST /api/shipments, GET /api/shipments/{id}
    - health.py:     GET /health

Routes stay thin: extract input, call a service, return the schema.
"""
