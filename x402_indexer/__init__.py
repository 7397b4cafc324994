"""x402 Workflow Indexer — deterministic event-sourced mirror of the x402 workflow contract.

Invariants:
    - Package root has no import side-effects (constants only)

Design Decisions:
    - No star exports: explicit imports from subpackages only
"""

__version__ = "1.0.0"
