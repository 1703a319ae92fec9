"""
Prefect flows for the dataset pipeline.

Flows:
- pipeline: Read the export, enrich it, write Species/Observations/Locations/Checklists

Usage (local):
    python -m birdbase.flows.pipeline
    birdbase build

Usage (Prefect):
    prefect server start  # Optional, for dashboard
    python -m birdbase.flows.pipeline
"""
