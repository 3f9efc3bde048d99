"""
Embeddings layer for semantic search.

Responsibilities:
- Render business records into deterministic, weighted text.
- Load the sentence-transformer model (downloading it on first use).
- Encode free text and business records into 384-dim vectors.
- Regenerate stored embeddings in bulk under a fixed concurrency ceiling.
"""
