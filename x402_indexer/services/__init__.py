"""Services Layer — event store, derived-state stores, replay engine, ingestor, queries.

Invariants:
    - Services own all DB and chain IO; decisions are delegated to core/
    - WorkflowState rows are written only by ReplayEngine and Ingestor

Design Decisions:
    - One file per component for locality (store, replay, ingest, query)
"""
