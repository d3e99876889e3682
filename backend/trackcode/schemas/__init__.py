"""
TrackCode Backend — Pydantic Schemas
======================================

API contracts, kept separate from the ORM models so the HTTP surface
exposes exactly the fields the back-office needs.
"""
