"""Core (UI-agnostic) activity budget dashboard logic.

This package contains:
- sheet ingestion (CSV text -> ActivityRecord) and the bundled fallback dataset
- filter normalization and chart projections
- metrics and page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- export sinks (CSV, PowerPoint) and the narrative analysis hook
"""
