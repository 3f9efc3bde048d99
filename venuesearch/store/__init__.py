"""
Document-store adapters for business records.

Responsibilities:
- Execute filter documents produced by the search layer.
- Serve nearest-neighbour queries over the stored embedding field.
- Persist regenerated embeddings.
Backends: MongoDB (Atlas vector index) and an in-memory pandas store for
local runs and tests.
"""
