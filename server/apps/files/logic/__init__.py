"""Business logic layer for files app.

This package contains all business logic for file operations:
- Upload planning (single PUT vs. multipart partition)
- Upload sessions and multipart completion
- Ownership checks, deletion and download URLs
- Reconciliation with object store events and stale upload sweeps

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).

Reference: https://github.com/dry-python
for decoupling business logic from Django views.
"""
