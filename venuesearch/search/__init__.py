"""
Natural-language and semantic search over bookmarked businesses.

Responsibilities:
- Translate a free-text query into a structured search configuration.
- Build document-store filters from that configuration (text, category,
  flags, proximity radius or viewport box).
- Run vector similarity search with a strict score threshold.
- Orchestrate the two search paths, which stay separate.
"""
