"""Pydantic Schemas — response models for the read-only API.

Invariants:
    - Schemas describe the system boundary (API responses)
    - Domain enums from core/ used for status fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
